"""Date handling for stored message records.

Dates are stored as ISO-8601 strings that keep the sender's UTC offset, so
a record shows the time the way the message declared it.
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Sort key for records whose date cannot be read
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def get_local_date(value: Union[datetime, str, None] = None) -> datetime:
    """Return an aware datetime for value, defaulting to now.

    Naive datetimes are assumed to be in the server's local timezone.
    """
    if value is None:
        return datetime.now().astimezone()

    if isinstance(value, str):
        parsed = parse_date_from_storage(value)
        if parsed is None:
            return datetime.now().astimezone()
        value = parsed

    if value.tzinfo is None:
        return value.astimezone()
    return value


def format_date_for_storage(value: datetime) -> str:
    return get_local_date(value).isoformat()


def parse_date_from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored date string.

    Accepts ISO-8601 (current format) and RFC 2822 (as written in mail
    headers). Returns None when neither matches.
    """
    if not value:
        return None

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            logger.debug(f"Unparseable stored date: {value!r}")
            return None

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def date_sort_key(value: Optional[str]) -> datetime:
    return parse_date_from_storage(value) or EPOCH
