"""
Domain exceptions - Semantic error types for registration, login and catalogue.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries the user-facing message; HTTP status mapping
lives in the API layer.
"""


class RegistrationError(Exception):
    """Base class for domain errors."""

    message = "Error interno del servidor"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


# Validation errors - bad input shape


class ValidationError(RegistrationError):
    """Input failed a shape or format check."""

    message = "Datos inválidos"

    def __init__(self, message: str | None = None, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class MissingField(ValidationError):
    """One or more required fields are empty."""

    message = "Todos los campos son requeridos"

    def __init__(self, fields: list[str]) -> None:
        super().__init__(details=[{"field": name, "message": "Campo requerido"} for name in fields])
        self.fields = fields


class InvalidEmailFormat(ValidationError):
    message = "Formato de correo electrónico inválido"

    def __init__(self) -> None:
        super().__init__(details=[{"field": "email", "message": self.message}])


class InvalidCodeFormat(ValidationError):
    message = "El código debe tener exactamente 6 dígitos"


class PasswordTooLong(ValidationError):
    """bcrypt only reads the first 72 bytes of a secret."""

    message = "La contraseña no puede superar los 72 bytes"

    def __init__(self) -> None:
        super().__init__(details=[{"field": "password", "message": self.message}])


# Conflict errors - duplicate email


class ConflictError(RegistrationError):
    message = "Conflicto con un recurso existente"


class EmailAlreadyRegistered(ConflictError):
    """Email already belongs to a committed user."""

    message = "Este correo ya está registrado"

    def __init__(self, email: str = "") -> None:
        super().__init__()
        self.email = email

    def __str__(self) -> str:
        return self.email or self.message


class DuplicateEmail(ConflictError):
    """Storage-level UNIQUE constraint violated on insert."""

    message = "Este correo ya está registrado"

    def __init__(self, email: str = "") -> None:
        super().__init__()
        self.email = email

    def __str__(self) -> str:
        return self.email or self.message


# Auth errors - credentials, pending registration lifecycle


class AuthError(RegistrationError):
    message = "No autorizado"


class NoPendingRegistration(AuthError):
    message = "Sesión expirada o no hay solicitud de verificación pendiente."


class CodeExpired(AuthError):
    message = "El código ha expirado. Por favor, solicita uno nuevo."


class AttemptsExhausted(AuthError):
    message = "Demasiados intentos fallidos. Por favor, reinicia el proceso de registro."


class IncorrectCode(AuthError):
    message = "Código incorrecto"

    def __init__(self, attempts_remaining: int) -> None:
        super().__init__()
        self.attempts_remaining = attempts_remaining


class InvalidCredentials(AuthError):
    """Unknown email or wrong password - deliberately indistinguishable."""

    message = "Credenciales inválidas"


class NotAuthenticated(AuthError):
    message = "Acceso no autorizado. Inicia sesión."


class CaptchaFailed(AuthError):
    message = "Verificación CAPTCHA fallida. Por favor, inténtalo de nuevo."


# Dependency errors - storage or email transport unavailable


class DependencyError(RegistrationError):
    message = "Servicio no disponible temporalmente"


class NotificationDeliveryFailed(DependencyError):
    message = "Error al enviar el correo de verificación"


class StorageUnavailable(DependencyError):
    message = "Servicio no disponible temporalmente"

