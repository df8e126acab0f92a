"""Outbound relay: compose, deliver and keep a sent copy.

Flow for one send:
1. Verify the sender's API key (or password)
2. Check the recipient has a domain
3. Compose the MIME message and hand it to the delivery channel
4. On success only: move staged attachments into sent storage, then write
   the ``sent`` record owned by the sender

A delivery failure propagates as-is; nothing is persisted and nothing is
retried.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import List, Optional, Sequence

from ..auth.credentials import CredentialValidator
from ..domain.mail.addresses import extract_domain
from ..domain.mail.dates import format_date_for_storage, get_local_date
from ..domain.mail.errors import InvalidRecipientError
from ..domain.mail.filenames import sanitize_filename, unique_filename
from ..domain.mail.models import AttachmentMeta, Direction, MessageRecord, StagedAttachment
from ..domain.mail.ports.delivery_port import DeliveryChannelPort
from ..domain.mail.ports.record_store_port import RecordStorePort

logger = logging.getLogger(__name__)


@dataclass
class SendRequest:
    """Outbound message as submitted by a client."""
    user: str
    to: str
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    api_key: Optional[str] = None
    password: Optional[str] = None


@dataclass
class SendResult:
    delivery_id: str
    email_id: str


class OutboundRelay:
    """Outbound Relay Adapter between the API and the delivery channel."""

    def __init__(
        self,
        validator: CredentialValidator,
        delivery: DeliveryChannelPort,
        record_store: RecordStorePort,
    ):
        self.validator = validator
        self.delivery = delivery
        self.record_store = record_store

    async def send(
        self,
        request: SendRequest,
        attachments: Sequence[StagedAttachment] = (),
    ) -> SendResult:
        """Send a message on behalf of request.user.

        Raises:
            AuthenticationError: Sender unknown, inactive or bad credential
            InvalidRecipientError: Recipient has no domain
            DeliveryError: Delivery channel failed (no record written)
            StorageError: Sent copy could not be persisted
        """
        account = await asyncio.to_thread(
            self.validator.verify,
            request.user,
            secret=request.password,
            api_key=request.api_key,
        )
        sender = account.email

        if not extract_domain(request.to):
            raise InvalidRecipientError(f"Invalid recipient address: {request.to!r}")

        attachments = await asyncio.to_thread(_with_unique_names, attachments)
        message = await asyncio.to_thread(compose_message, sender, request, attachments)

        delivery_id = await self.delivery.deliver(message)

        email_id = await asyncio.to_thread(self._store_sent, sender, request, attachments)

        logger.info(
            f"Sent email: id={email_id}, delivery_id={delivery_id}, from={sender}, "
            f"to={request.to}, attachments={len(attachments)}"
        )
        return SendResult(delivery_id=delivery_id, email_id=email_id)

    def _store_sent(
        self,
        sender: str,
        request: SendRequest,
        attachments: Sequence[StagedAttachment],
    ) -> str:
        """Move staged uploads into sent storage and write the sent record."""
        email_id = self.record_store.generate_id()
        for staged in attachments:
            self.record_store.move_staged_attachment(email_id, staged.path, staged.filename)

        record = MessageRecord(
            id=email_id,
            type=Direction.SENT,
            user=sender,
            from_=sender,
            to=request.to,
            subject=request.subject,
            date=format_date_for_storage(get_local_date()),
            text=request.text,
            html=request.html,
            attachments=[
                AttachmentMeta(
                    filename=staged.filename,
                    content_type=staged.content_type,
                    size=staged.size,
                )
                for staged in attachments
            ],
        )
        self.record_store.save_parsed(email_id, record, Direction.SENT)
        return email_id


def _with_unique_names(attachments: Sequence[StagedAttachment]) -> List[StagedAttachment]:
    taken = set()
    result = []
    for staged in attachments:
        name = unique_filename(sanitize_filename(staged.filename), taken)
        taken.add(name)
        size = staged.size if staged.size is not None else staged.path.stat().st_size
        result.append(StagedAttachment(
            filename=name,
            path=staged.path,
            size=size,
            content_type=staged.content_type,
        ))
    return result


def compose_message(
    sender: str,
    request: SendRequest,
    attachments: Sequence[StagedAttachment] = (),
) -> EmailMessage:
    """Build the MIME message for an outbound send."""
    message = EmailMessage()
    message["From"] = formataddr((sender, sender))
    message["To"] = request.to
    message["Subject"] = request.subject or ""
    message["Message-ID"] = make_msgid(domain=extract_domain(sender) or None)

    message.set_content(request.text or "")
    if request.html:
        message.add_alternative(request.html, subtype="html")

    for staged in attachments:
        content_type = staged.content_type or mimetypes.guess_type(staged.filename)[0]
        maintype, _, subtype = (content_type or "application/octet-stream").partition("/")
        message.add_attachment(
            staged.path.read_bytes(),
            maintype=maintype,
            subtype=subtype or "octet-stream",
            filename=staged.filename,
        )

    return message
