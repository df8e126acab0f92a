"""Attachment filename sanitizing for safe storage"""

import os
import re
import secrets
import time
from typing import Iterable, Optional

# Bytes, as encoded on disk (UTF-8)
MAX_FILENAME_LENGTH = 255

# Longer suffixes are not treated as extensions when truncating
MAX_EXTENSION_LENGTH = 16


def sanitize_filename(filename: Optional[str]) -> str:
    """Sanitize an attachment filename for storage

    Args:
        filename: Filename as declared by the sender (may be None)

    Returns:
        A single path component safe to join under an attachment directory.
        A generated name is returned when nothing usable is left.

    Example:
        >>> sanitize_filename('../../order.pdf')
        'order.pdf'
        >>> sanitize_filename('order (copy).pdf')
        'order_copy_.pdf'
    """
    if filename:
        # Remove path components (both separators, whatever the host OS)
        filename = os.path.basename(filename.replace("\\", "/"))

        # Replace problematic characters with underscore
        filename = re.sub(r'[^\w\s.@+-]', '_', filename)

        # Collapse multiple spaces/underscores
        filename = re.sub(r'[\s_]+', '_', filename)

        filename = filename.strip(".")

    if not filename:
        return generate_attachment_name()

    return _fit(filename)


def _fit(filename: str, suffix: str = "") -> str:
    """Append suffix before the extension, truncating the stem so the
    UTF-8 encoded result never exceeds MAX_FILENAME_LENGTH bytes."""
    name, ext = os.path.splitext(filename)
    if len(ext) > MAX_EXTENSION_LENGTH:
        name, ext = filename, ""
    budget = MAX_FILENAME_LENGTH - len((suffix + ext).encode("utf-8"))
    stem = name.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return stem + suffix + ext


def generate_attachment_name() -> str:
    return f"attachment-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def unique_filename(filename: str, taken: Iterable[str]) -> str:
    """Return filename, suffixed with a counter if it is already taken.

    Example:
        >>> unique_filename('a.pdf', {'a.pdf'})
        'a-1.pdf'
    """
    taken = set(taken)
    if filename not in taken:
        return filename

    counter = 1
    while _fit(filename, f"-{counter}") in taken:
        counter += 1
    return _fit(filename, f"-{counter}")
