"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services and
infrastructure adapters into routes. Everything is constructed once during
the app lifespan and read back from app.state; nothing here is a
module-level singleton.
"""

import re
import secrets

from fastapi import Depends, Request, Response
from psycopg_pool import ConnectionPool

from handinhand.config.settings import Settings
from handinhand.domain.exceptions import NotAuthenticated
from handinhand.domain.models import SessionUser
from handinhand.domain.ports import (
    CaptchaVerifier,
    ProductRepository,
    SessionStore,
    UserRepository,
)
from handinhand.domain.registration import RegistrationService

# Shape of tokens we issue (secrets.token_urlsafe); bounded by the
# session_id and token columns
SESSION_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")


def get_settings_state(request: Request) -> Settings:
    return request.app.state.settings


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration_service


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_product_repository(request: Request) -> ProductRepository:
    return request.app.state.product_repository


def get_captcha_verifier(request: Request) -> CaptchaVerifier:
    return request.app.state.captcha_verifier


def set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )


def get_session_token(
    request: Request, settings: Settings = Depends(get_settings_state)
) -> str | None:
    """Session token from the cookie; a missing or malformed cookie counts as none."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token or not SESSION_TOKEN_PATTERN.fullmatch(token):
        return None
    return token


def get_session_id(
    response: Response,
    token: str | None = Depends(get_session_token),
    settings: Settings = Depends(get_settings_state),
) -> str:
    """
    Session id keying the caller's pending registration.

    Anonymous visitors get a fresh random token, returned as a cookie so
    the follow-up verification request lands on the same key.
    """
    if token:
        return token
    token = secrets.token_urlsafe(32)
    set_session_cookie(response, settings, token)
    return token


def get_current_user(
    token: str | None = Depends(get_session_token),
    sessions: SessionStore = Depends(get_session_store),
) -> SessionUser | None:
    if not token:
        return None
    return sessions.get_user(token)


def require_user(user: SessionUser | None = Depends(get_current_user)) -> SessionUser:
    """Logged-in user, or 401."""
    if user is None:
        raise NotAuthenticated()
    return user
