"""
Domain layer - Pure business logic with zero framework imports.

This package contains the email-code registration state machine, the
credential primitives it relies on, and the port interfaces adapters
implement, keeping HTTP and SQL concerns out of the core.
"""

from .credentials import BcryptHasher, CodeGenerator
from .exceptions import (
    AttemptsExhausted,
    AuthError,
    CodeExpired,
    ConflictError,
    DependencyError,
    DuplicateEmail,
    EmailAlreadyRegistered,
    IncorrectCode,
    InvalidCredentials,
    NoPendingRegistration,
    NotificationDeliveryFailed,
    RegistrationError,
    ValidationError,
)
from .models import CodeIssued, PendingRegistration, SessionUser, User
from .ports import (
    Notifier,
    PendingRegistrationStore,
    ProductRepository,
    SessionStore,
    UserRepository,
)
from .registration import RegistrationService

__all__ = [
    "AttemptsExhausted",
    "AuthError",
    "BcryptHasher",
    "CodeExpired",
    "CodeGenerator",
    "CodeIssued",
    "ConflictError",
    "DependencyError",
    "DuplicateEmail",
    "EmailAlreadyRegistered",
    "IncorrectCode",
    "InvalidCredentials",
    "NoPendingRegistration",
    "NotificationDeliveryFailed",
    "Notifier",
    "PendingRegistration",
    "PendingRegistrationStore",
    "ProductRepository",
    "RegistrationError",
    "RegistrationService",
    "SessionStore",
    "SessionUser",
    "User",
    "UserRepository",
    "ValidationError",
]
