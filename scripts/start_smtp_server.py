#!/usr/bin/env python3
"""SMTP Server Startup Script for the mail relay.

Starts the aiosmtpd listener with MailRelaySMTPHandler. Accepted messages
are stored under STORAGE_ROOT; recipients outside SMTP_ALLOWED_DOMAINS are
refused at RCPT time.

Usage:
    python scripts/start_smtp_server.py

Environment Variables:
    SMTP_HOST: Bind address (default: 0.0.0.0)
    SMTP_PORT: Listen port (default: 2525)
    SMTP_HOSTNAME: Name announced in the greeting
    SMTP_ALLOWED_DOMAINS: Comma separated recipient domains
    SMTP_AUTH_OPTIONAL: Accept unauthenticated sessions (default: true)
    SMTP_IDLE_TIMEOUT: Idle session timeout in seconds (default: 300)
    SMTP_MAX_MESSAGE_SIZE: Max message size in bytes
    STORAGE_ROOT: Storage root directory (default: ./emails)
    DATABASE_URL: Credential database URL
    PASSWORD_PEPPER: Password hashing pepper
"""

import asyncio
import logging
import sys

from mailrelay.auth.credentials import Argon2SecretVerifier, CredentialValidator
from mailrelay.config import get_settings
from mailrelay.database import create_db_engine, create_session_factory, init_db
from mailrelay.infrastructure.credentials import SqlCredentialStore
from mailrelay.infrastructure.ingest.ingestion_service import IngestionService
from mailrelay.infrastructure.ingest.server import create_smtp_controller
from mailrelay.infrastructure.storage import FilesystemRecordStore
from mailrelay.observability.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def main():
    """Start the SMTP server and keep it running until interrupted."""
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    logger.info("=== Mail Relay SMTP Server Starting ===")
    logger.info(f"SMTP Bind: {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    logger.info(f"Allowed domains: {', '.join(settings.allowed_domains)}")
    logger.info(f"Max Message Size: {settings.SMTP_MAX_MESSAGE_SIZE} bytes")
    logger.info(f"Idle Timeout: {settings.SMTP_IDLE_TIMEOUT}s")
    logger.info(f"Storage: {settings.STORAGE_ROOT}")

    record_store = FilesystemRecordStore(settings.STORAGE_ROOT, upload_dir=settings.upload_dir)

    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    credential_store = SqlCredentialStore(create_session_factory(engine))
    validator = CredentialValidator(credential_store, Argon2SecretVerifier(settings.PASSWORD_PEPPER))

    controller = create_smtp_controller(
        settings=settings,
        ingestion=IngestionService(record_store),
        validator=validator,
    )
    controller.start()

    logger.info(f"SMTP server started on {settings.SMTP_HOST}:{settings.SMTP_PORT}")
    logger.info("Press Ctrl+C to stop")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        logger.info("Shutting down SMTP server...")
        controller.stop()
        logger.info("SMTP server stopped")


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, exiting")
        sys.exit(0)
    except Exception as e:
        logger.error(f"SMTP server failed: {e}", exc_info=True)
        sys.exit(1)
