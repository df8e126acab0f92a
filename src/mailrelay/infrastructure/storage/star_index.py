"""Per-user star index persisted as one JSON file per user.

Every mutation reads the user's whole set and rewrites it, so calls for the
same user are serialized with a per-user lock. Calls for different users
never block each other.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Set
from urllib.parse import quote

from ...domain.mail.errors import StorageError
from ...domain.mail.models import MessageRecord
from ...domain.mail.ownership import can_access
from ...domain.mail.ports.record_store_port import RecordStorePort
from .filesystem_record_store import atomic_write

logger = logging.getLogger(__name__)


class StarIndex:
    """Set of starred message ids per user."""

    def __init__(self, directory: Path, record_store: RecordStorePort):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.record_store = record_store
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user)
            if lock is None:
                lock = self._locks[user] = threading.Lock()
            return lock

    def _path_for(self, user: str) -> Path:
        # percent-encoding keeps distinct identifiers on distinct files
        return self.directory / f"{quote(user or 'anonymous', safe='@._-')}.json"

    def _read(self, user: str) -> List[str]:
        path = self._path_for(user)
        try:
            ids = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable star file for {user}, treating as empty: {e}")
            return []
        if not isinstance(ids, list):
            return []
        # Keep first-seen order, drop duplicates and junk
        seen: Set[str] = set()
        result = []
        for message_id in ids:
            if isinstance(message_id, str) and message_id not in seen:
                seen.add(message_id)
                result.append(message_id)
        return result

    def _write(self, user: str, ids: List[str]) -> None:
        try:
            atomic_write(self._path_for(user), json.dumps(ids, indent=2).encode("utf-8"))
        except OSError as e:
            logger.error(f"Failed to persist star set for {user}: {e}")
            raise StorageError(f"Failed to persist star set: {e}") from e

    def add(self, user: str, message_id: str) -> None:
        """Star message_id for user. Starring twice is a no-op."""
        with self._lock_for(user):
            ids = self._read(user)
            if message_id in ids:
                return
            ids.append(message_id)
            self._write(user, ids)
        logger.info(f"Starred message: user={user}, id={message_id}")

    def remove(self, user: str, message_id: str) -> None:
        """Unstar message_id for user. Unstarring a non-member is a no-op."""
        with self._lock_for(user):
            ids = self._read(user)
            if message_id not in ids:
                return
            ids.remove(message_id)
            self._write(user, ids)
        logger.info(f"Unstarred message: user={user}, id={message_id}")

    def ids(self, user: str) -> List[str]:
        return self._read(user)

    def is_starred(self, user: str, message_id: str) -> bool:
        return message_id in self.ids(user)

    def list(self, user: str) -> List[MessageRecord]:
        """Resolve the user's starred ids to records.

        Ids whose record no longer resolves, or that the user may no longer
        read, are dropped silently.
        """
        records = []
        for message_id in self.ids(user):
            record = self.record_store.get_by_id(message_id)
            if record is not None and can_access(record, user):
                records.append(record)
        return records
