"""
Exception handlers - Single normalisation point for error responses.

Every error leaves the API as
    {"success": false, "error": <message>, "details"?: [...], "intentosRestantes"?: n}
Internal detail (exception text of dependency or unexpected failures) is
added under "detail" only in development mode.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from handinhand.domain.exceptions import (
    AttemptsExhausted,
    AuthError,
    ConflictError,
    DependencyError,
    IncorrectCode,
    InvalidCredentials,
    NotAuthenticated,
    NotificationDeliveryFailed,
    RegistrationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Error interno del servidor"
VALIDATION_ERROR_MESSAGE = "Datos inválidos"


def status_for(exc: RegistrationError) -> int:
    """Map a domain exception to its HTTP status code."""
    if isinstance(exc, AttemptsExhausted):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, (InvalidCredentials, NotAuthenticated)):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, (AuthError, ValidationError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, NotificationDeliveryFailed):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, DependencyError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, **extra: object) -> dict:
    body: dict = {"success": False, "error": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


def _is_development(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is None or settings.is_development


async def domain_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    status_code = status_for(exc)
    extra: dict = {}

    if isinstance(exc, ValidationError) and exc.details:
        extra["details"] = exc.details
    if isinstance(exc, IncorrectCode):
        extra["intentosRestantes"] = exc.attempts_remaining

    if isinstance(exc, DependencyError):
        cause = exc.__cause__
        logger.error("%s %s failed: %s (cause: %r)", request.method, request.url.path, exc.message, cause)
        if _is_development(request) and cause is not None:
            extra["detail"] = str(cause)

    return JSONResponse(status_code=status_code, content=error_body(exc.message, **extra))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body") or "body",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(VALIDATION_ERROR_MESSAGE, details=details),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra = {"detail": repr(exc)} if _is_development(request) else {}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(INTERNAL_ERROR_MESSAGE, **extra),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistrationError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
