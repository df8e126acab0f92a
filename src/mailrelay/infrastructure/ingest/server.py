"""Construction of the inbound SMTP server from settings."""

import logging

from aiosmtpd.controller import Controller

from ...auth.credentials import CredentialValidator
from ...config import Settings
from .ingestion_service import IngestionService
from .smtp_handler import MailRelaySMTPHandler, SMTPCredentialAuthenticator

logger = logging.getLogger(__name__)


def create_smtp_controller(
    settings: Settings,
    ingestion: IngestionService,
    validator: CredentialValidator,
) -> Controller:
    """Build (but do not start) an aiosmtpd Controller for the relay.

    Idle sessions are dropped after SMTP_IDLE_TIMEOUT seconds and bodies
    larger than SMTP_MAX_MESSAGE_SIZE are refused by aiosmtpd itself.
    """
    handler = MailRelaySMTPHandler(
        ingestion=ingestion,
        allowed_domains=settings.allowed_domains,
    )

    controller = Controller(
        handler,
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        server_hostname=settings.SMTP_HOSTNAME,
        authenticator=SMTPCredentialAuthenticator(validator),
        auth_required=not settings.SMTP_AUTH_OPTIONAL,
        auth_require_tls=settings.SMTP_AUTH_REQUIRE_TLS,
        data_size_limit=settings.SMTP_MAX_MESSAGE_SIZE,
        timeout=settings.SMTP_IDLE_TIMEOUT,
        enable_SMTPUTF8=True,
    )

    logger.info(
        f"SMTP controller configured: {settings.SMTP_HOST}:{settings.SMTP_PORT}, "
        f"allowed_domains={settings.allowed_domains}, "
        f"auth_optional={settings.SMTP_AUTH_OPTIONAL}"
    )
    return controller
