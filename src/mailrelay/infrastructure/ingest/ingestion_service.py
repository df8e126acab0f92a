"""Ingestion of completed inbound messages into the record store.

Order of writes for one message:
1. raw bytes (always, so nothing is ever lost)
2. attachment blobs
3. the structured ``received`` record, which makes the message visible

A parse failure after step 1 writes an error record instead of 2 and 3.
"""

import logging
from typing import Optional

from ...domain.mail.dates import format_date_for_storage, get_local_date
from ...domain.mail.errors import ParseError
from ...domain.mail.models import AttachmentMeta, Direction, MessageRecord
from ...domain.mail.ports.record_store_port import RecordStorePort
from .mime_parser import parse_message

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns raw inbound bytes into stored records."""

    def __init__(self, record_store: RecordStorePort):
        self.record_store = record_store

    def ingest(self, raw: bytes, owner: Optional[str] = None) -> str:
        """Persist one inbound message.

        Args:
            raw: Complete message bytes as transferred
            owner: Authenticated session identity, if any

        Returns:
            str: Id of the stored message

        Raises:
            ParseError: If the bytes cannot be parsed; ``message_id`` is set
                and both the raw bytes and an error record are stored
            StorageError: If the store cannot be written
        """
        message_id = self.record_store.generate_id()
        self.record_store.save_raw(message_id, raw)

        try:
            parsed = parse_message(raw)
        except ParseError as e:
            logger.error(f"Parsing failed for {message_id}: {e}")
            self.record_store.save_error(message_id, str(e), owner)
            e.message_id = message_id
            raise

        record = MessageRecord(
            id=message_id,
            type=Direction.RECEIVED,
            user=owner,
            from_=parsed.from_text,
            to=parsed.to_text,
            subject=parsed.subject,
            date=format_date_for_storage(get_local_date(parsed.date)),
            text=parsed.text,
            html=parsed.html,
            attachments=[
                AttachmentMeta(
                    filename=blob.filename,
                    content_type=blob.content_type,
                    size=blob.size,
                )
                for blob in parsed.attachments
            ],
        )

        self.record_store.save_attachments(message_id, parsed.attachments, Direction.RECEIVED)
        self.record_store.save_parsed(message_id, record, Direction.RECEIVED)

        logger.info(
            f"Ingested message: id={message_id}, to={record.to}, "
            f"attachments={len(record.attachments)}"
        )
        return message_id
