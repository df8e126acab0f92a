"""Record Store Port - Domain interface for message persistence.

This port defines the contract for storing and retrieving raw messages,
structured records, attachments and failure records. Adapters implement it
on top of a concrete backend (the filesystem store ships with the project).

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..models import AttachmentBlob, Direction, ErrorRecord, MessageRecord


class RecordStorePort(ABC):
    """Port interface for category-partitioned message storage.

    Key Design Principles:
    - Every write targets a location unique to the message id, so concurrent
      ingestion never contends on the same file
    - Writes are not transactional across calls; a crash between save_raw
      and save_parsed leaves an invisible but recoverable raw entry
    - Records are write-once; there is no update or delete operation
    - Corrupt stored records read as absent

    Example Usage:
        store = FilesystemRecordStore(root=Path("emails"))

        message_id = store.generate_id()
        store.save_raw(message_id, raw_bytes)
        store.save_parsed(message_id, record, Direction.RECEIVED)

        record = store.get_by_id(message_id)
    """

    @abstractmethod
    def generate_id(self) -> str:
        """Generate a new message id.

        Ids are a millisecond timestamp prefix plus a random suffix, so they
        sort roughly by creation time and collide with negligible
        probability.
        """
        pass

    @abstractmethod
    def save_raw(self, message_id: str, raw: bytes) -> None:
        """Persist the original transferred bytes verbatim."""
        pass

    @abstractmethod
    def get_raw(self, message_id: str) -> Optional[bytes]:
        """Return the raw bytes stored for message_id, or None."""
        pass

    @abstractmethod
    def save_parsed(self, message_id: str, record: MessageRecord, direction: Direction) -> None:
        """Persist a structured record in the direction's partition.

        Raises:
            StorageError: If the record cannot be written
        """
        pass

    @abstractmethod
    def save_attachments(
        self,
        message_id: str,
        blobs: List[AttachmentBlob],
        direction: Direction,
    ) -> None:
        """Write attachment blobs under (message_id, filename)."""
        pass

    @abstractmethod
    def move_staged_attachment(self, message_id: str, source: Path, filename: str) -> Path:
        """Relocate a staged upload into sent-attachment storage.

        The staging copy is removed once the permanent copy exists.

        Returns:
            Path: Final location of the blob
        """
        pass

    @abstractmethod
    def save_error(self, message_id: str, reason: str, owner: Optional[str] = None,
                   error_type: str = "ParseError") -> ErrorRecord:
        """Persist a failure record for message_id."""
        pass

    @abstractmethod
    def get_error(self, message_id: str) -> Optional[ErrorRecord]:
        pass

    @abstractmethod
    def get_by_id(self, message_id: str) -> Optional[MessageRecord]:
        """Look a record up in the received partition, then the sent one.

        Returns:
            MessageRecord or None if absent or unreadable
        """
        pass

    @abstractmethod
    def list_by_owner_and_direction(
        self,
        owner: Optional[str],
        direction: Direction,
    ) -> List[MessageRecord]:
        """List records of one direction, newest first.

        Args:
            owner: Restrict to records this user owns; None lists everything
            direction: Partition to scan

        Note:
            Malformed entries are skipped, never raised.
        """
        pass

    @abstractmethod
    def attachment_path(self, message_id: str, filename: str, direction: Direction) -> Path:
        """Absolute path where the blob for (message_id, filename) lives."""
        pass

    @abstractmethod
    def attachment_exists(self, message_id: str, filename: str, direction: Direction) -> bool:
        pass

    def directory_status(self) -> Dict[str, bool]:
        """Report which storage categories are available (for health checks)."""
        return {}
