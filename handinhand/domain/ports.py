"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols structurally.
"""

from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from .models import PendingRegistration, Product, SessionUser, User


class UserRepository(Protocol):
    """Port interface for committed users."""

    def find_by_email(self, email: str) -> User | None: ...

    def get_by_id(self, user_id: int) -> User | None: ...

    def insert(self, email: str, display_name: str, password_hash: str) -> User:
        """
        Insert a new user.

        Uniqueness of email is enforced by the storage layer's UNIQUE
        constraint, not by a prior read.

        Raises:
            DuplicateEmail: If the email is already taken
        """
        ...

    def verify_login(self, email: str, password: str) -> User:
        """
        Check an email/password pair.

        Implementations must run one hash comparison whether or not the
        email exists, and raise the same error in both failure cases.

        Raises:
            InvalidCredentials: Unknown email or wrong password
        """
        ...


class PendingSlot(Protocol):
    """
    Locked view of one session's pending registration.

    Obtained from PendingRegistrationStore.locked(); changes become
    visible to other requests when the context exits cleanly.
    """

    pending: PendingRegistration | None

    def save(self, pending: PendingRegistration) -> None: ...

    def discard(self) -> None: ...

    def promote(self) -> User:
        """
        Commit the pending registration as a user and remove it.

        Runs in the slot's own transaction, so the insert and the delete
        become visible together.

        Raises:
            DuplicateEmail: If the email is already taken; the pending
                registration is left in place
        """
        ...


class PendingRegistrationStore(Protocol):
    """Port interface for the session-keyed pending-registration store."""

    def locked(self, session_id: str) -> AbstractContextManager[PendingSlot]:
        """
        Lock the session's pending registration for read-modify-write.

        Concurrent callers for the same session id are serialised.
        Changes made through the slot are committed on clean exit and
        rolled back if the block raises.
        """
        ...

    def discard(self, session_id: str) -> None: ...

    def purge_expired(self, older_than: datetime) -> int: ...


class SessionStore(Protocol):
    """Port interface for logged-in sessions."""

    def create(self, user_id: int, ttl_seconds: int) -> str:
        """Create a session and return its opaque token."""
        ...

    def get_user(self, token: str) -> SessionUser | None: ...

    def delete(self, token: str) -> None: ...

    def purge_expired(self) -> int: ...


class ProductRepository(Protocol):
    """Port interface for the product catalogue."""

    def add(
        self,
        name: str,
        description: str,
        price: Decimal,
        image_url: str,
        producer_id: int,
    ) -> Product: ...

    def list_all(self) -> list[Product]:
        """Return every product, newest first."""
        ...


class Notifier(Protocol):
    """Port interface for outbound email."""

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a message.

        Raises:
            NotificationDeliveryFailed: If the transport rejects or times out
        """
        ...


class CaptchaVerifier(Protocol):
    """Port interface for human-verification tokens."""

    def verify(self, token: str) -> bool: ...
