"""
Registration domain service - email-code verification state machine.

This module contains the core business logic for user sign-up: a visitor
submits identity fields, receives a numeric code by email, and proves
ownership of the address by submitting that code back from the same
session.

Registration State Machine (per session)
========================================

States:
- IDLE: No pending registration for the session
- CODE_REQUESTED: Code issued, PendingRegistration stored
- VERIFIED: Terminal, user committed and pending state discarded
- EXPIRED: Terminal, code window elapsed (15 minutes by default)
- EXHAUSTED: Terminal, attempt budget spent (5 by default)
- SESSION_ENDED: Terminal, session logged out or discarded

Valid Transitions:
    IDLE -> CODE_REQUESTED            (request_code)
    CODE_REQUESTED -> CODE_REQUESTED  (wrong code, or a fresh request_code)
    CODE_REQUESTED -> VERIFIED        (correct code)
    CODE_REQUESTED -> EXPIRED         (verify after expiry)
    CODE_REQUESTED -> EXHAUSTED       (verify with attempts >= max)
    CODE_REQUESTED -> SESSION_ENDED   (cancel)

Every terminal state removes the PendingRegistration, so the session is
back to IDLE from the store's point of view.

Note: Per-session serialisation comes from the pending store's
locked() context (row lock). On a correct code the slot promotes the
pending registration to a user inside that same transaction, so the user
insert and the pending delete commit together; email uniqueness comes from
the users table UNIQUE constraint.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .credentials import BcryptHasher, CodeGenerator
from .exceptions import (
    AttemptsExhausted,
    CodeExpired,
    DuplicateEmail,
    EmailAlreadyRegistered,
    IncorrectCode,
    InvalidCodeFormat,
    InvalidEmailFormat,
    MissingField,
    NoPendingRegistration,
    NotificationDeliveryFailed,
    PasswordTooLong,
    RegistrationError,
)
from .models import CodeIssued, PendingRegistration, User
from .ports import Notifier, PendingRegistrationStore, UserRepository

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# bcrypt ignores (or, since bcrypt 5, rejects) anything past this
MAX_PASSWORD_BYTES = 72

VERIFICATION_SUBJECT = "Verificación de cuenta - Hand in Hand"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def verification_body(display_name: str, code: str, ttl_minutes: int) -> str:
    return (
        f"¡Hola {display_name}!\n\n"
        "Gracias por registrarte en Hand in Hand. Para completar tu registro, "
        "utiliza el siguiente código de verificación:\n\n"
        f"    {code}\n\n"
        f"Este código expirará en {ttl_minutes} minutos.\n"
        "Si no has solicitado este código, puedes ignorar este correo.\n\n"
        "Este es un correo automático, por favor no respondas a este mensaje."
    )


@dataclass
class RegistrationService:
    """
    Domain service for two-phase registration.

    Orchestrates the flow: field validation, existing-user check, code
    generation, hashing, pending-state persistence, code delivery and,
    on verification, the user commit.
    """

    users: UserRepository
    pending_store: PendingRegistrationStore
    notifier: Notifier
    hasher: BcryptHasher = field(default_factory=BcryptHasher)
    code_generator: CodeGenerator = field(default_factory=CodeGenerator)
    code_ttl_seconds: int = 900
    max_attempts: int = 5
    clock: Callable[[], datetime] = utc_now

    def request_code(
        self, session_id: str, email: str, display_name: str, password: str
    ) -> CodeIssued:
        """
        Begin registration for a session and email the verification code.

        Args:
            session_id: Caller's session token (pending-state key)
            email: Candidate address (will be normalized)
            display_name: Public name for the new user
            password: Plaintext password (will be hashed)

        Returns:
            CodeIssued with send time and expiry

        Raises:
            MissingField: If any field is empty
            InvalidEmailFormat: If the email does not look like an address
            PasswordTooLong: If the password exceeds MAX_PASSWORD_BYTES in UTF-8
            EmailAlreadyRegistered: If a user with this email exists
            NotificationDeliveryFailed: If the email could not be sent;
                no pending registration is left behind
        """
        missing = [
            name
            for name, value in (("email", email), ("nombre", display_name), ("password", password))
            if not value or not value.strip()
        ]
        if missing:
            raise MissingField(missing)

        normalized_email = self._normalize_email(email)
        if not EMAIL_PATTERN.match(normalized_email):
            raise InvalidEmailFormat()

        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong()

        if self.users.find_by_email(normalized_email) is not None:
            raise EmailAlreadyRegistered(normalized_email)

        now = self.clock()
        # Abandoned registrations hold password hashes; drop them once expired
        self.pending_store.purge_expired(now - timedelta(seconds=self.code_ttl_seconds))

        code = self.code_generator.next()
        pending = PendingRegistration(
            email=normalized_email,
            display_name=display_name.strip(),
            password_hash=self.hasher.hash(password),
            code_hash=self.hasher.hash(code),
            issued_at=now,
            attempts=0,
        )

        # Exiting the block with an exception rolls the save back
        with self.pending_store.locked(session_id) as slot:
            slot.save(pending)
            try:
                self.notifier.send(
                    normalized_email,
                    VERIFICATION_SUBJECT,
                    verification_body(pending.display_name, code, self.code_ttl_seconds // 60),
                )
            except NotificationDeliveryFailed:
                logger.error("Verification email to %s failed, pending state rolled back", normalized_email)
                raise
            except Exception as e:
                logger.exception("Notifier raised unexpectedly for %s", normalized_email)
                raise NotificationDeliveryFailed() from e

        logger.info("Verification code issued for %s", normalized_email)
        return CodeIssued(code_sent_at=now, expires_at=pending.expires_at(self.code_ttl_seconds))

    def verify_code(self, session_id: str, submitted_code: str) -> User:
        """
        Check a submitted code and commit the user on success.

        Check order under the session lock:
        1. Pending registration exists
        2. Code window not elapsed
        3. Fewer than max_attempts previous attempts
        4. Attempt counted, then constant-time code comparison

        Args:
            session_id: Caller's session token
            submitted_code: Code typed by the user

        Returns:
            The newly committed User

        Raises:
            InvalidCodeFormat: Not exactly code_length ASCII digits (no attempt counted)
            NoPendingRegistration: Nothing to verify for this session
            CodeExpired: Window elapsed; pending state discarded
            AttemptsExhausted: Budget spent; pending state discarded
            IncorrectCode: Mismatch; carries attempts_remaining
            EmailAlreadyRegistered: Email committed concurrently by another session
        """
        length = self.code_generator.length
        if not isinstance(submitted_code, str) or not re.fullmatch(rf"[0-9]{{{length}}}", submitted_code):
            raise InvalidCodeFormat(f"El código debe tener exactamente {length} dígitos")

        failure: RegistrationError | None = None
        user: User | None = None

        # Outcomes that must persist (attempt count, discard) are raised
        # after the block so the slot commits.
        with self.pending_store.locked(session_id) as slot:
            pending = slot.pending
            if pending is None:
                failure = NoPendingRegistration()
            elif pending.is_expired(self.clock(), self.code_ttl_seconds):
                slot.discard()
                failure = CodeExpired()
            elif pending.attempts >= self.max_attempts:
                slot.discard()
                failure = AttemptsExhausted()
            else:
                pending.attempts += 1
                if self.hasher.verify(submitted_code, pending.code_hash):
                    try:
                        user = slot.promote()
                    except DuplicateEmail:
                        slot.discard()
                        failure = EmailAlreadyRegistered(pending.email)
                else:
                    slot.save(pending)
                    failure = IncorrectCode(attempts_remaining=self.max_attempts - pending.attempts)

        if failure is not None:
            if isinstance(failure, IncorrectCode):
                logger.warning(
                    "Failed verification attempt for %s (%d remaining)",
                    pending.email,
                    failure.attempts_remaining,
                )
            raise failure

        logger.info("User registered: %s (id=%s)", user.email, user.id)
        return user

    def cancel(self, session_id: str) -> None:
        """Drop any pending registration for a session that is ending."""
        self.pending_store.discard(session_id)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()
