"""MIME Parser for inbound messages.

Handles parsing of raw RFC 5322 bytes into the fields kept in a message
record: addresses, subject, date, plain/HTML bodies and attachments.
Supports RFC 2047 encoded headers and filenames and nested multipart
messages.
"""

import email
import email.policy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage, Message
from typing import Iterator, List, Optional

from ...domain.mail.errors import ParseError
from ...domain.mail.filenames import sanitize_filename, unique_filename
from ...domain.mail.models import AttachmentBlob

logger = logging.getLogger(__name__)


@dataclass
class ParsedMessage:
    """Fields extracted from one inbound message."""
    from_text: Optional[str]
    to_text: Optional[str]
    subject: Optional[str]
    date: Optional[datetime]
    text: Optional[str]
    html: Optional[str]
    attachments: List[AttachmentBlob] = field(default_factory=list)


def parse_mime_message(raw_mime: bytes) -> EmailMessage:
    """Parse raw MIME bytes into an EmailMessage object.

    Args:
        raw_mime: Raw MIME message bytes

    Returns:
        EmailMessage: Parsed MIME message

    Raises:
        ParseError: If the bytes carry no message structure at all
    """
    if not raw_mime or not raw_mime.strip():
        raise ParseError("Empty message")

    try:
        msg = email.message_from_bytes(raw_mime, policy=email.policy.default)
    except Exception as e:
        logger.error(f"Failed to parse MIME message: {e}")
        raise ParseError(f"Invalid MIME message: {e}") from e

    if not msg.keys():
        raise ParseError("Invalid MIME message: no header fields found")

    return msg


def parse_message(raw_mime: bytes) -> ParsedMessage:
    """Parse raw bytes and extract every field a record needs.

    Raises:
        ParseError: If the message structure or any of its parts is unreadable
    """
    msg = parse_mime_message(raw_mime)

    try:
        text_part = msg.get_body(preferencelist=("plain",))
        html_part = msg.get_body(preferencelist=("html",))

        return ParsedMessage(
            from_text=_header_text(msg, "From"),
            to_text=_header_text(msg, "To"),
            subject=_header_text(msg, "Subject"),
            date=_header_date(msg),
            text=_part_text(text_part),
            html=_part_text(html_part),
            attachments=extract_attachments(msg, skip=(text_part, html_part)),
        )
    except ParseError:
        raise
    except Exception as e:
        logger.error(f"Failed to extract message fields: {e}")
        raise ParseError(f"Invalid MIME message: {e}") from e


def _header_text(msg: Message, name: str) -> Optional[str]:
    value = msg.get(name)
    if value is None:
        return None
    return str(value)


def _header_date(msg: Message) -> Optional[datetime]:
    header = msg.get("Date")
    if header is None:
        return None
    parsed = getattr(header, "datetime", None)
    if parsed is None:
        logger.warning(f"Unparseable Date header, using receive time: {header!r}")
    return parsed


def _part_text(part: Optional[Message]) -> Optional[str]:
    if part is None:
        return None
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        # Unknown or lying charset: keep the text rather than drop the message
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _iter_leaf_parts(msg: Message) -> Iterator[Message]:
    """Yield non-container parts; message/* parts are yielded whole."""
    if msg.get_content_maintype() == "message":
        yield msg
        return
    if msg.is_multipart():
        for part in msg.get_payload():
            yield from _iter_leaf_parts(part)
        return
    yield msg


def extract_attachments(msg: Message, skip=()) -> List[AttachmentBlob]:
    """Extract all attachments from MIME message.

    Walks the MIME tree. A part is an attachment when it is not one of the
    chosen body parts and either declares a filename, is marked
    ``Content-Disposition: attachment``, or is a non-text part (inline
    images, forwarded messages). Filenames are sanitized and made unique
    within the message; unnamed parts get a generated name.

    Args:
        msg: Parsed email message
        skip: Parts already used as the text/HTML body

    Returns:
        List[AttachmentBlob]: Attachments in message order
    """
    attachments = []
    taken = set()
    skip_ids = {id(part) for part in skip if part is not None}

    for part in _iter_leaf_parts(msg):
        if id(part) in skip_ids:
            continue

        filename = part.get_filename()
        disposition = part.get_content_disposition()
        maintype = part.get_content_maintype()

        if not filename and disposition != "attachment" and maintype == "text":
            continue

        if maintype == "message":
            inner = part.get_payload()
            inner = inner[0] if isinstance(inner, list) and inner else inner
            content = inner.as_bytes() if isinstance(inner, Message) else b""
        else:
            content = part.get_payload(decode=True) or b""

        name = unique_filename(sanitize_filename(filename), taken)
        taken.add(name)

        attachments.append(AttachmentBlob(
            filename=name,
            content=content,
            content_type=part.get_content_type(),
        ))

        logger.info(
            f"Extracted attachment: {name} ({part.get_content_type()}, {len(content)} bytes)"
        )

    return attachments
