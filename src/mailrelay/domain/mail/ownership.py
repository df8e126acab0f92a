"""Ownership rule for message records.

A sent record belongs to the user who sent it. A received record belongs
to the normalized recipient of its ``to`` header.
"""

from typing import Optional

from .addresses import normalize_address
from .models import Direction, MessageRecord


def owner_of(record: MessageRecord) -> Optional[str]:
    if record.type == Direction.SENT:
        return record.user
    return normalize_address(record.to) or None


def is_owner(record: MessageRecord, user: Optional[str]) -> bool:
    """True if user owns the record under the direction-specific rule."""
    if not user:
        return False
    return owner_of(record) == user


def can_access(record: MessageRecord, user: Optional[str]) -> bool:
    """Read/star check: the user sent the message or is its recipient.

    An empty user means the caller is the administrative view and is always
    allowed.
    """
    if not user:
        return True
    return record.user == user or normalize_address(record.to) == user
