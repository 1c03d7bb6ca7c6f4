"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from handinhand.adapters.captcha import AllowAllCaptcha, RecaptchaVerifier
from handinhand.adapters.repository import (
    PostgresPendingRegistrationStore,
    PostgresProductRepository,
    PostgresSessionStore,
    PostgresUserRepository,
    run_migrations,
)
from handinhand.adapters.smtp.console import ConsoleNotifier
from handinhand.adapters.smtp.smtp import SmtpNotifier
from handinhand.api.errors import register_exception_handlers
from handinhand.api.routes import router
from handinhand.config.settings import Settings, get_settings
from handinhand.domain.credentials import BcryptHasher, CodeGenerator
from handinhand.domain.ports import Notifier
from handinhand.domain.registration import RegistrationService, utc_now

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 2.0

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "auth", "description": "Email-verified registration, login and sessions"},
    {"name": "productos", "description": "Marketplace product catalogue"},
]


def build_notifier(settings: Settings) -> Notifier:
    if not settings.smtp_host:
        logger.warning("SMTP not configured - verification emails are logged to the console")
        return ConsoleNotifier()
    return SmtpNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.smtp_from,
        user=settings.smtp_user,
        password=settings.smtp_password,
        timeout=settings.smtp_timeout_seconds,
        use_tls=settings.smtp_use_tls,
    )


def configure_state(app: FastAPI, settings: Settings, pool: ConnectionPool) -> None:
    """
    Construct process-scoped services and attach them to app.state.

    Routes reach them only through the Depends() factories in
    handinhand.api.dependencies.
    """
    hasher = BcryptHasher(cost=settings.bcrypt_cost)
    user_repository = PostgresUserRepository(pool, hasher)
    pending_store = PostgresPendingRegistrationStore(pool, user_repository)

    app.state.settings = settings
    app.state.pool = pool
    app.state.user_repository = user_repository
    app.state.pending_store = pending_store
    app.state.session_store = PostgresSessionStore(pool)
    app.state.product_repository = PostgresProductRepository(pool)
    app.state.captcha_verifier = (
        RecaptchaVerifier(settings.recaptcha_secret, timeout=settings.recaptcha_timeout_seconds)
        if settings.recaptcha_secret
        else AllowAllCaptcha()
    )
    app.state.registration_service = RegistrationService(
        users=user_repository,
        pending_store=pending_store,
        notifier=build_notifier(settings),
        hasher=hasher,
        code_generator=CodeGenerator(length=settings.code_length),
        code_ttl_seconds=settings.code_ttl_seconds,
        max_attempts=settings.max_attempts,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations and purges stale sessions on startup
    - Wires services into app.state
    - Closes connection pool on shutdown
    """
    settings: Settings = app.state.settings

    logger.info("Starting application (%s)...", settings.environment)
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    configure_state(app, settings, pool)

    purged_pending = app.state.pending_store.purge_expired(
        utc_now() - timedelta(seconds=settings.code_ttl_seconds)
    )
    purged_sessions = app.state.session_store.purge_expired()
    logger.info("Purged %d stale pending registration(s), %d session(s)", purged_pending, purged_sessions)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if isinstance(app.state.captcha_verifier, RecaptchaVerifier):
        app.state.captcha_verifier.close()
    pool.close()
    logger.info("Database connection pool closed")


def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint with database validation.

    Returns 200 when the database answers, 503 otherwise. Plain def: the
    pool call blocks, so it runs in the threadpool.
    """
    settings: Settings = request.app.state.settings
    mode = "development" if settings.is_development else "production"
    try:
        pool = request.app.state.pool
        with pool.connection(timeout=HEALTH_CHECK_TIMEOUT_SECONDS) as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        logger.error("Health check failed: %s", e)
        body = {"status": "SERVICE_UNAVAILABLE", "mode": mode, "db": "disconnected"}
        if settings.is_development:
            body["error"] = str(e)
        return JSONResponse(status_code=503, content=body)

    return JSONResponse(status_code=200, content={"status": "OK", "mode": mode, "db": "connected"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="handinhand",
        description="Hand in Hand marketplace API - email-verified registration and product catalogue",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings

    cors_kwargs = (
        {"allow_origin_regex": ".*"} if settings.is_development else {"allow_origins": settings.cors_origins}
    )
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        **cors_kwargs,
    )

    register_exception_handlers(app)
    app.include_router(router)
    app.add_api_route("/health", health_check, methods=["GET"], include_in_schema=True)

    return app


app = create_app()
