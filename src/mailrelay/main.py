"""Mail relay HTTP API - FastAPI application factory

This module wires the services and exposes them over HTTP:
- Record store, star index and credential validator built from Settings
- Mailbox, starred, send, auth, users and health routers
- Request ID middleware and CORS
- Mapping of domain exceptions to HTTP responses

Run with:
    uvicorn mailrelay.main:app --host 0.0.0.0 --port 4000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth.credentials import Argon2SecretVerifier, CredentialValidator
from .auth.router import router as auth_router
from .config import Settings, get_settings
from .database import create_db_engine, create_session_factory, init_db
from .domain.mail.errors import (
    AccessDeniedError,
    AuthenticationError,
    DeliveryError,
    InvalidRecipientError,
    NotFoundError,
    StorageError,
)
from .domain.mail.ports.credential_store_port import CredentialStorePort
from .domain.mail.ports.delivery_port import DeliveryChannelPort
from .domain.mail.ports.record_store_port import RecordStorePort
from .infrastructure.credentials.sql_credential_store import SqlCredentialStore
from .infrastructure.delivery.smtp_delivery import SMTPDeliveryChannel
from .infrastructure.storage.filesystem_record_store import FilesystemRecordStore
from .infrastructure.storage.star_index import StarIndex
from .mailbox.router import all_router, received_router, sent_router
from .mailbox.service import MailService
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .outbound.router import router as send_router
from .outbound.service import OutboundRelay
from .starred.router import router as starred_router
from .users.router import router as users_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    record_store: Optional[RecordStorePort] = None,
    credential_store: Optional[CredentialStorePort] = None,
    delivery: Optional[DeliveryChannelPort] = None,
) -> FastAPI:
    """Build the FastAPI application and its services.

    Any collaborator not passed in is constructed from settings.
    """
    settings = settings or get_settings()

    if record_store is None:
        record_store = FilesystemRecordStore(settings.STORAGE_ROOT, upload_dir=settings.upload_dir)

    if credential_store is None:
        engine = create_db_engine(settings.DATABASE_URL)
        init_db(engine)
        credential_store = SqlCredentialStore(create_session_factory(engine))

    if delivery is None:
        delivery = SMTPDeliveryChannel(
            hostname=settings.DELIVERY_HOST,
            port=settings.DELIVERY_PORT,
            username=settings.DELIVERY_USERNAME,
            password=settings.DELIVERY_PASSWORD,
            use_tls=settings.DELIVERY_USE_TLS,
            timeout=settings.DELIVERY_TIMEOUT,
        )

    validator = CredentialValidator(credential_store, Argon2SecretVerifier(settings.PASSWORD_PEPPER))
    star_index = StarIndex(settings.STORAGE_ROOT / "starred", record_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Mail relay API starting up...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Storage root: {settings.STORAGE_ROOT}")
        yield
        logger.info("Mail relay API shutting down...")

    app = FastAPI(
        title="Mail Relay API",
        description="Self-hosted mail relay: mailbox retrieval, starring and outbound send",
        version=__version__,
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.record_store = record_store
    app.state.credential_store = credential_store
    app.state.validator = validator
    app.state.mail_service = MailService(record_store, star_index)
    app.state.outbound_relay = OutboundRelay(validator, delivery, record_store)

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    _register_exception_handlers(app)

    app.include_router(observability_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(received_router)
    app.include_router(sent_router)
    app.include_router(all_router)
    app.include_router(starred_router)
    app.include_router(send_router)

    @app.get("/", tags=["Root"])
    def root():
        return {
            "message": "Mail Relay API",
            "version": __version__,
            "endpoints": {
                "auth": "/auth",
                "emails": "/emails",
                "sentEmails": "/sent-emails",
                "allEmails": "/all-emails",
                "starred": "/starred",
                "send": "/send",
                "users": "/users",
                "health": "/health",
            },
        }

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP responses with an ``error`` body."""

    def _json(status_code: int, message: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": message})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _json(status.HTTP_404_NOT_FOUND, "Not found")

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError):
        return _json(status.HTTP_403_FORBIDDEN, "Access denied")

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        return _json(status.HTTP_401_UNAUTHORIZED, "Authentication failed")

    @app.exception_handler(InvalidRecipientError)
    async def invalid_recipient_handler(request: Request, exc: InvalidRecipientError):
        return _json(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(DeliveryError)
    async def delivery_handler(request: Request, exc: DeliveryError):
        return _json(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}", exc_info=exc)
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _json(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


_default_app: Optional[FastAPI] = None


def build_default_app() -> FastAPI:
    """Create the application from environment settings, configuring logging once."""
    global _default_app
    if _default_app is None:
        settings = get_settings()
        configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
        _default_app = create_app(settings)
    return _default_app


def __getattr__(name: str):
    if name == "app":
        return build_default_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
