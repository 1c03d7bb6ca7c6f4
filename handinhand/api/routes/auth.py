"""
Auth routes - Registration, verification, login and session endpoints.

This module defines the HTTP endpoints:
- POST /enviar-codigo - Begin registration, email a verification code
- POST /verificar-codigo - Submit the code, commit the user and log in
- POST /login - Start a session with email and password
- POST /logout - End the session
- GET /session - Current session user

Handlers are plain ``def`` so FastAPI runs them in its threadpool; bcrypt,
SMTP and database calls never block the event loop.
"""

import logging

from fastapi import APIRouter, Depends, Response

from handinhand.api.dependencies import (
    clear_session_cookie,
    get_captcha_verifier,
    get_current_user,
    get_registration_service,
    get_session_id,
    get_session_store,
    get_session_token,
    get_settings_state,
    get_user_repository,
    set_session_cookie,
)
from handinhand.api.models import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SendCodeRequest,
    SendCodeResponse,
    SessionResponse,
    UserOut,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from handinhand.config.settings import Settings
from handinhand.domain.exceptions import CaptchaFailed, NotAuthenticated
from handinhand.domain.models import SessionUser
from handinhand.domain.ports import CaptchaVerifier, SessionStore, UserRepository
from handinhand.domain.registration import RegistrationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/enviar-codigo",
    response_model=SendCodeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation or CAPTCHA error"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        500: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Request a verification code",
)
def send_code(
    request_data: SendCodeRequest,
    session_id: str = Depends(get_session_id),
    service: RegistrationService = Depends(get_registration_service),
    captcha: CaptchaVerifier = Depends(get_captcha_verifier),
) -> SendCodeResponse:
    """
    Start registration and email a 6-digit code.

    - **email**, **nombre**, **password**: identity of the new account
    - **captchaToken**: required when reCAPTCHA is configured
    """
    if not captcha.verify(request_data.captcha_token or ""):
        raise CaptchaFailed()

    issued = service.request_code(
        session_id, request_data.email, request_data.display_name, request_data.password
    )
    return SendCodeResponse(
        message="Código enviado correctamente a tu correo",
        expires_at=issued.expires_at,
    )


@router.post(
    "/verificar-codigo",
    response_model=VerifyCodeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Wrong, expired or missing code"},
        409: {"model": ErrorResponse, "description": "Email registered concurrently"},
        429: {"model": ErrorResponse, "description": "Too many attempts"},
    },
    summary="Verify the emailed code",
)
def verify_code(
    request_data: VerifyCodeRequest,
    response: Response,
    session_id: str = Depends(get_session_id),
    service: RegistrationService = Depends(get_registration_service),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_state),
) -> VerifyCodeResponse:
    """Commit the pending registration and log the new user in."""
    user = service.verify_code(session_id, request_data.code)

    token = sessions.create(user.id, settings.session_ttl_seconds)
    set_session_cookie(response, settings, token)

    return VerifyCodeResponse(
        message="Usuario registrado correctamente",
        user_id=user.id,
        user=UserOut.from_user(user),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Log in",
)
def login(
    request_data: LoginRequest,
    response: Response,
    old_token: str | None = Depends(get_session_token),
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_state),
) -> LoginResponse:
    """Check credentials and issue a fresh session token."""
    email = request_data.email.strip().lower()
    user = users.verify_login(email, request_data.password)

    # New token on every login; the previous one is revoked
    if old_token:
        sessions.delete(old_token)
    token = sessions.create(user.id, settings.session_ttl_seconds)
    set_session_cookie(response, settings, token)

    logger.info("User logged in: %s (id=%s)", user.email, user.id)
    return LoginResponse(message="Inicio de sesión exitoso", user=UserOut.from_user(user))


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    sessions: SessionStore = Depends(get_session_store),
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings_state),
) -> MessageResponse:
    """Revoke the session, drop any pending registration and clear the cookie."""
    if token:
        sessions.delete(token)
        service.cancel(token)
    clear_session_cookie(response, settings)
    return MessageResponse(message="Sesión cerrada correctamente")


@router.get(
    "/session",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "No active session"}},
    summary="Current session",
)
def current_session(
    user: SessionUser | None = Depends(get_current_user),
) -> SessionResponse:
    if user is None:
        raise NotAuthenticated("No hay sesión activa")
    return SessionResponse(user=UserOut.from_user(user))
