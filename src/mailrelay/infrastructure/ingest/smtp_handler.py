"""SMTP Handler for mail relay ingestion.

Implements the aiosmtpd hooks for receiving mail. aiosmtpd drives the
session phases (AUTH, MAIL, RCPT, DATA) and replies 503 to commands sent out
of order; this module supplies the relay's policy for each phase and hands
completed messages to the ingestion service.

Architecture: Hexagonal - Infrastructure adapter implementing email ingestion
"""

import asyncio
import logging
import uuid
from typing import Iterable, Optional

from aiosmtpd.smtp import SMTP, AuthResult, Envelope, LoginPassword, Session

from ...auth.credentials import CredentialValidator
from ...domain.mail.addresses import extract_domain, is_allowed_domain
from ...domain.mail.errors import AuthenticationError, ParseError, RelayDeniedError
from ...observability.request_id import set_request_id
from .ingestion_service import IngestionService

logger = logging.getLogger(__name__)


class SMTPCredentialAuthenticator:
    """aiosmtpd authenticator backed by the CredentialValidator.

    Handles the LOGIN and PLAIN mechanisms. On success the account
    identifier becomes the session's auth_data.
    """

    def __init__(self, validator: CredentialValidator):
        self.validator = validator

    def __call__(self, server: SMTP, session: Session, envelope: Envelope,
                 mechanism: str, auth_data) -> AuthResult:
        if not isinstance(auth_data, LoginPassword):
            logger.warning(f"Unsupported SMTP auth mechanism: {mechanism}")
            return AuthResult(success=False, handled=False)

        identifier = _decode(auth_data.login)
        password = _decode(auth_data.password)

        try:
            record = self.validator.verify(identifier, secret=password)
        except AuthenticationError as e:
            logger.warning(
                f"SMTP authentication failed: user={identifier!r}, "
                f"peer={session.peer}, reason={e}"
            )
            return AuthResult(success=False, handled=False)

        logger.info(f"SMTP session authenticated: user={record.email}, peer={session.peer}")
        return AuthResult(success=True, auth_data=record.email)


class MailRelaySMTPHandler:
    """SMTP handler for relay ingestion.

    Phase policy:
    - MAIL FROM: accepted unconditionally
    - RCPT TO: recipient domain must be allow-listed, whether or not the
      session authenticated (no open relay)
    - DATA: the complete body is ingested; the authenticated identity, if
      any, is recorded as the message's user

    Replies:
        '250 Message accepted <id>' - Stored
        '550 5.7.1 Relay access denied...' - Recipient domain not allowed
        '451 Message parsing failed' - Raw bytes and error record kept
        '451 Temporary server error' - Storage failure
    """

    def __init__(self, ingestion: IngestionService, allowed_domains: Iterable[str]):
        """Initialize SMTP handler.

        Args:
            ingestion: Service persisting completed messages
            allowed_domains: Recipient domains accepted for relay
        """
        self.ingestion = ingestion
        self.allowed_domains = frozenset(d.lower() for d in allowed_domains)

    def check_recipient(self, address: str) -> None:
        """Enforce the relay allow-list on a recipient address.

        Raises:
            RelayDeniedError: If the address's domain is not allow-listed
        """
        if not is_allowed_domain(address, self.allowed_domains):
            raise RelayDeniedError(address, extract_domain(address))

    async def handle_MAIL(self, server: SMTP, session: Session, envelope: Envelope,
                          address: str, mail_options: list) -> str:
        envelope.mail_from = address
        envelope.mail_options.extend(mail_options)
        return '250 OK'

    async def handle_RCPT(self, server: SMTP, session: Session, envelope: Envelope,
                          address: str, rcpt_options: list) -> str:
        try:
            self.check_recipient(address)
        except RelayDeniedError as e:
            logger.warning(
                f"Relay denied: rcpt={address}, domain={e.domain!r}, "
                f"peer={session.peer}, user={session_identity(session)}"
            )
            return '550 5.7.1 Relay access denied: recipient domain not allowed'

        envelope.rcpt_tos.append(address)
        envelope.rcpt_options.extend(rcpt_options)
        return '250 OK'

    async def handle_DATA(self, server: SMTP, session: Session, envelope: Envelope) -> str:
        """Handle email DATA command (main SMTP handler entry point).

        Called by aiosmtpd once the whole body, up to the end marker, has
        been received.
        """
        set_request_id(f"smtp-{uuid.uuid4()}")

        raw = envelope.original_content or envelope.content or b""
        if isinstance(raw, str):
            raw = raw.encode("utf-8", errors="surrogateescape")

        owner = session_identity(session)
        logger.info(
            f"Received email: from={envelope.mail_from}, to={envelope.rcpt_tos}, "
            f"user={owner}, size={len(raw)} bytes"
        )

        try:
            message_id = await asyncio.to_thread(self.ingestion.ingest, raw, owner)
        except ParseError as e:
            logger.error(f"Rejected unparseable message {e.message_id}: {e}")
            return '451 Message parsing failed'
        except Exception as e:
            logger.error(f"Unexpected error processing email: {e}", exc_info=True)
            return '451 Temporary server error'

        return f'250 Message accepted {message_id}'


def session_identity(session: Session) -> Optional[str]:
    """Authenticated identifier of the session, or None when anonymous."""
    if not getattr(session, "authenticated", False):
        return None
    auth_data = getattr(session, "auth_data", None)
    if isinstance(auth_data, LoginPassword):
        return _decode(auth_data.login)
    if isinstance(auth_data, bytes):
        return _decode(auth_data)
    return auth_data or None


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""
