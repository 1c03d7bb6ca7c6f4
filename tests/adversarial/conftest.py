"""
Shared helpers for adversarial tests.

Provides common infrastructure for race condition and brute force tests;
the PostgreSQL pool and registration service fixtures come from the
top-level conftest.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

MAX_WORKERS = 8


@pytest.fixture
def run_concurrently() -> Callable[[Callable[[], object], int], list[object]]:
    """
    Run a callable from several threads released at the same instant.

    Returns each call's result, or the exception it raised.
    """

    def run(fn: Callable[[], object], workers: int = MAX_WORKERS) -> list[object]:
        barrier = Barrier(workers)

        def call() -> object:
            barrier.wait()
            try:
                return fn()
            except Exception as e:
                return e

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(call) for _ in range(workers)]
            return [f.result() for f in futures]

    return run
