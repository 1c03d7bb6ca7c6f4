"""
Domain models - Plain dataclasses shared between the domain and adapters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal


@dataclass
class PendingRegistration:
    """
    In-flight registration held between request_code and verify_code.

    Only hashed secrets are kept here; the plaintext code leaves the
    process through the notifier and is never stored.
    """

    email: str
    display_name: str
    password_hash: str
    code_hash: str
    issued_at: datetime
    attempts: int = 0

    def expires_at(self, ttl_seconds: int) -> datetime:
        return self.issued_at + timedelta(seconds=ttl_seconds)

    def is_expired(self, now: datetime, ttl_seconds: int) -> bool:
        return now > self.expires_at(ttl_seconds)


@dataclass(frozen=True)
class User:
    id: int
    email: str
    display_name: str
    password_hash: str
    created_at: datetime


@dataclass(frozen=True)
class SessionUser:
    """User identity attached to a logged-in session (no credentials)."""

    id: int
    email: str
    display_name: str


@dataclass(frozen=True)
class CodeIssued:
    code_sent_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: str
    price: Decimal
    image_url: str
    producer_id: int | None
    created_at: datetime = field(compare=False)
