"""Filesystem Record Store - Implementation of RecordStorePort on local disk.

Each category is a directory under the store root; each message is one file
named after its id. Listing scans a directory and deserializes every
record, which is fine for modest mailbox sizes.

Layout:
    raw/<id>.eml                      original bytes
    parsed/<id>.json                  received records
    sent/<id>.json                    sent records
    attachments/<id>/<filename>       received attachment blobs
    sent_attachments/<id>/<filename>  sent attachment blobs
    errors/<id>.error.json            parse failure records
    starred/<user>.json               star sets (see star_index)
    uploads/                          staging area for HTTP uploads

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import json
import logging
import os
import secrets
import shutil
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from ...domain.mail.dates import date_sort_key
from ...domain.mail.errors import StorageError
from ...domain.mail.filenames import sanitize_filename
from ...domain.mail.models import (
    AttachmentBlob,
    Direction,
    ErrorRecord,
    MessageRecord,
)
from ...domain.mail.ownership import is_owner
from ...domain.mail.ports.record_store_port import RecordStorePort

logger = logging.getLogger(__name__)

CATEGORIES = (
    "raw",
    "parsed",
    "attachments",
    "errors",
    "sent",
    "sent_attachments",
    "starred",
    "uploads",
)

# Attempts at drawing a fresh id before giving up
_MAX_ID_ATTEMPTS = 5


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to path via a temp file in the same directory + rename.

    Readers never observe a partially written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class FilesystemRecordStore(RecordStorePort):
    """Record store backed by a directory tree.

    Example:
        store = FilesystemRecordStore(root=Path("emails"))
        message_id = store.generate_id()
        store.save_raw(message_id, b"From: a@b.c\\r\\n\\r\\nhi")
    """

    def __init__(self, root: Path, upload_dir: Optional[Path] = None):
        """Initialize the store and create every category directory.

        Args:
            root: Store root directory
            upload_dir: Staging directory for uploads (default: root/uploads)
        """
        self.root = Path(root)
        self.directories: Dict[str, Path] = {
            name: self.root / name for name in CATEGORIES
        }
        if upload_dir is not None:
            self.directories["uploads"] = Path(upload_dir)

        try:
            for directory in self.directories.values():
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to initialize record store at {self.root}: {e}") from e

        logger.info(f"Initialized filesystem record store: root={self.root.resolve()}")

    # ------------------------------------------------------------------
    # ids
    # ------------------------------------------------------------------

    def generate_id(self) -> str:
        """Generate a unique message id: <epoch-ms>-<16 hex chars>.

        64 random bits per millisecond make a collision astronomically
        unlikely; the id is still re-drawn if it already names a stored
        message.
        """
        for _ in range(_MAX_ID_ATTEMPTS):
            message_id = f"{int(time.time() * 1000)}-{secrets.token_hex(8)}"
            if not self._id_in_use(message_id):
                return message_id
            logger.warning(f"Generated message id already in use, retrying: {message_id}")
        raise StorageError("Could not generate a unique message id")

    def _id_in_use(self, message_id: str) -> bool:
        return (
            self._raw_path(message_id).exists()
            or self._record_path(message_id, Direction.RECEIVED).exists()
            or self._record_path(message_id, Direction.SENT).exists()
        )

    # ------------------------------------------------------------------
    # paths
    # ------------------------------------------------------------------

    def _raw_path(self, message_id: str) -> Path:
        return self.directories["raw"] / f"{_safe_id(message_id)}.eml"

    def _record_path(self, message_id: str, direction: Direction) -> Path:
        directory = self.directories["sent" if direction == Direction.SENT else "parsed"]
        return directory / f"{_safe_id(message_id)}.json"

    def _error_path(self, message_id: str) -> Path:
        return self.directories["errors"] / f"{_safe_id(message_id)}.error.json"

    def _attachments_dir(self, message_id: str, direction: Direction) -> Path:
        category = "sent_attachments" if direction == Direction.SENT else "attachments"
        return self.directories[category] / _safe_id(message_id)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def save_raw(self, message_id: str, raw: bytes) -> None:
        try:
            atomic_write(self._raw_path(message_id), raw)
        except OSError as e:
            logger.error(f"Failed to store raw message {message_id}: {e}")
            raise StorageError(f"Failed to store raw message: {e}") from e
        logger.info(f"Stored raw message: id={message_id}, size={len(raw)} bytes")

    def get_raw(self, message_id: str) -> Optional[bytes]:
        path = self._raw_path(message_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read raw message: {e}") from e

    def save_parsed(self, message_id: str, record: MessageRecord, direction: Direction) -> None:
        path = self._record_path(message_id, direction)
        payload = json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")
        try:
            atomic_write(path, payload)
        except OSError as e:
            logger.error(f"Failed to store {direction.value} record {message_id}: {e}")
            raise StorageError(f"Failed to store record: {e}") from e
        logger.info(f"Stored {direction.value} record: id={message_id}")

    def save_attachments(
        self,
        message_id: str,
        blobs: List[AttachmentBlob],
        direction: Direction,
    ) -> None:
        if not blobs:
            return

        directory = self._attachments_dir(message_id, direction)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            for blob in blobs:
                target = directory / sanitize_filename(blob.filename)
                if target.exists():
                    raise StorageError(f"Attachment already stored: {message_id}/{target.name}")
                atomic_write(target, blob.content)
                logger.info(
                    f"Stored attachment: id={message_id}, filename={target.name}, "
                    f"size={blob.size} bytes"
                )
        except OSError as e:
            logger.error(f"Failed to store attachments for {message_id}: {e}")
            raise StorageError(f"Failed to store attachments: {e}") from e

    def move_staged_attachment(self, message_id: str, source: Path, filename: str) -> Path:
        directory = self._attachments_dir(message_id, Direction.SENT)
        target = directory / sanitize_filename(filename)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            os.unlink(source)
        except OSError as e:
            logger.error(f"Failed to move staged attachment {source} for {message_id}: {e}")
            raise StorageError(f"Failed to move staged attachment: {e}") from e

        logger.info(f"Moved staged attachment: id={message_id}, filename={target.name}")
        return target.resolve()

    def save_error(self, message_id: str, reason: str, owner: Optional[str] = None,
                   error_type: str = "ParseError") -> ErrorRecord:
        error = ErrorRecord(
            id=message_id,
            user=owner,
            error=reason,
            error_type=error_type,
            timestamp=datetime.now().astimezone().isoformat(),
        )
        try:
            atomic_write(
                self._error_path(message_id),
                error.model_dump_json(indent=2).encode("utf-8"),
            )
        except OSError as e:
            logger.error(f"Failed to store error record {message_id}: {e}")
            raise StorageError(f"Failed to store error record: {e}") from e

        logger.info(f"Stored error record: id={message_id}, error_type={error_type}")
        return error

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_error(self, message_id: str) -> Optional[ErrorRecord]:
        path = self._error_path(message_id)
        try:
            return ErrorRecord.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            return None
        except (OSError, ValidationError) as e:
            logger.warning(f"Unreadable error record {path.name}: {e}")
            return None

    def get_by_id(self, message_id: str) -> Optional[MessageRecord]:
        if not _is_safe_component(message_id):
            return None
        for direction in (Direction.RECEIVED, Direction.SENT):
            path = self._record_path(message_id, direction)
            if path.exists():
                return self._load_record(path)
        return None

    def list_by_owner_and_direction(
        self,
        owner: Optional[str],
        direction: Direction,
    ) -> List[MessageRecord]:
        directory = self.directories["sent" if direction == Direction.SENT else "parsed"]
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            return []

        records = []
        for path in directory.glob("*.json"):
            record = self._load_record(path)
            if record is None:
                continue
            if owner and not is_owner(record, owner):
                continue
            records.append(record)

        records.sort(key=lambda r: date_sort_key(r.date), reverse=True)
        return records

    def _load_record(self, path: Path) -> Optional[MessageRecord]:
        try:
            return MessageRecord.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable record {path.name}: {e}")
            return None

    def attachment_path(self, message_id: str, filename: str, direction: Direction) -> Path:
        return (self._attachments_dir(message_id, direction) / _safe_component(filename)).resolve()

    def attachment_exists(self, message_id: str, filename: str, direction: Direction) -> bool:
        if not (_is_safe_component(message_id) and _is_safe_component(filename)):
            return False
        return self.attachment_path(message_id, filename, direction).is_file()

    def directory_status(self) -> Dict[str, bool]:
        return {name: path.is_dir() for name, path in self.directories.items()}


def _is_safe_component(value: str) -> bool:
    return bool(value) and value not in (".", "..") and not any(c in value for c in "/\\\x00")


def _safe_component(value: str) -> str:
    """Reject values that would escape their category directory."""
    if not _is_safe_component(value):
        raise ValueError(f"Invalid storage key component: {value!r}")
    return value


def _safe_id(message_id: str) -> str:
    return _safe_component(message_id)
