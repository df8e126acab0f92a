"""Email address helpers used for ownership and relay policy."""

import re
from typing import Iterable, Optional

_BRACKETED = re.compile(r"<(.+?)>")
_VALID_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_address(address: Optional[str]) -> str:
    """Reduce a header address to the bare mailbox.

    Quotes are removed; ``Display Name <addr>`` yields ``addr``; anything
    else is returned trimmed.

    Example:
        >>> normalize_address('"User B" <user_b@domain.com>')
        'user_b@domain.com'
    """
    if not address:
        return ""

    address = address.replace('"', "")

    match = _BRACKETED.search(address)
    if match:
        return match.group(1)

    return address.strip()


def extract_domain(address: Optional[str]) -> str:
    """Return the lowercased domain part, or '' when there is none."""
    if not address:
        return ""
    parts = address.split("@")
    if len(parts) < 2:
        return ""
    return parts[1].strip().rstrip(">").lower()


def is_valid_email(address: Optional[str]) -> bool:
    if not address:
        return False
    return bool(_VALID_EMAIL.match(address))


def is_allowed_domain(address: str, allowed_domains: Iterable[str]) -> bool:
    """Check the address's domain against the relay allow-list."""
    domain = extract_domain(address)
    if not domain:
        return False
    return domain in {d.lower() for d in allowed_domains}
