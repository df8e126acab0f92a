"""Retrieval and access control over stored messages.

Every read path goes through MailService. Missing messages raise
NotFoundError and messages the user may not see raise AccessDeniedError;
the two are never folded together here.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..domain.mail.dates import date_sort_key
from ..domain.mail.errors import AccessDeniedError, NotFoundError
from ..domain.mail.models import Direction, MessageRecord
from ..domain.mail.ownership import can_access, is_owner
from ..domain.mail.ports.record_store_port import RecordStorePort
from ..infrastructure.storage.star_index import StarIndex

logger = logging.getLogger(__name__)

ALL = "all"


class MailService:
    """Listing, lookup, attachments and starring with ownership checks."""

    def __init__(
        self,
        record_store: RecordStorePort,
        star_index: StarIndex,
    ):
        self.record_store = record_store
        self.star_index = star_index

    def get_emails(
        self,
        user: Optional[str],
        direction: Union[Direction, str] = Direction.RECEIVED,
    ) -> List[MessageRecord]:
        """List records for user, newest first.

        Args:
            user: Owner to filter by; None or '' returns every record
                (administrative view)
            direction: 'received', 'sent' or 'all' (both merged)
        """
        if direction == ALL:
            records = (
                self.record_store.list_by_owner_and_direction(user or None, Direction.RECEIVED)
                + self.record_store.list_by_owner_and_direction(user or None, Direction.SENT)
            )
            records.sort(key=lambda r: date_sort_key(r.date), reverse=True)
            return records

        return self.record_store.list_by_owner_and_direction(user or None, Direction(direction))

    def get_email_by_id(self, email_id: str, user: Optional[str] = None) -> MessageRecord:
        """Fetch one record, checking that user sent or received it.

        Raises:
            NotFoundError: No record with this id
            AccessDeniedError: Record exists but belongs to someone else
        """
        record = self.record_store.get_by_id(email_id)
        if record is None:
            raise NotFoundError(f"Email not found: {email_id}")

        if not can_access(record, user):
            logger.warning(f"Access denied: user={user}, id={email_id}")
            raise AccessDeniedError("Access denied")

        return record

    def get_attachment_path(
        self,
        email_id: str,
        filename: str,
        direction: Union[Direction, str] = Direction.RECEIVED,
        user: Optional[str] = None,
    ) -> Path:
        """Resolve an attachment blob, checking ownership of its message.

        For received attachments the user must be the message's recipient;
        for sent ones, its sender.

        Raises:
            NotFoundError: Blob or parent record missing
            AccessDeniedError: User does not own the parent record
        """
        direction = Direction(direction)

        if not self.record_store.attachment_exists(email_id, filename, direction):
            raise NotFoundError(f"Attachment not found: {email_id}/{filename}")

        if user:
            record = self.record_store.get_by_id(email_id)
            if record is None or record.type != direction:
                raise NotFoundError(f"Email not found: {email_id}")
            if not is_owner(record, user):
                logger.warning(
                    f"Attachment access denied: user={user}, id={email_id}, filename={filename}"
                )
                raise AccessDeniedError("Access denied")

        return self.record_store.attachment_path(email_id, filename, direction)

    def star_email(self, user: str, email_id: str) -> None:
        """Star a message the user sent or received (idempotent)."""
        self.get_email_by_id(email_id, self._require_user(user))
        self.star_index.add(user, email_id)

    def unstar_email(self, user: str, email_id: str) -> None:
        """Remove a star (idempotent; no-op if not starred)."""
        self.get_email_by_id(email_id, self._require_user(user))
        self.star_index.remove(user, email_id)

    def get_starred_emails(self, user: str) -> List[MessageRecord]:
        return self.star_index.list(self._require_user(user))

    def is_starred(self, user: str, email_id: str) -> bool:
        """Whether user starred a message they may read."""
        self.get_email_by_id(email_id, self._require_user(user))
        return self.star_index.is_starred(user, email_id)

    @staticmethod
    def _require_user(user: Optional[str]) -> str:
        if not user:
            # star sets are per user
            raise AccessDeniedError("User is required")
        return user
