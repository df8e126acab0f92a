"""Domain exceptions for the mail relay.

Each failure kind has its own type so callers can tell a missing message
apart from one the user may not read.
"""

from typing import Optional


class MailRelayError(Exception):
    """Base exception for mail relay operations."""
    pass


class AuthenticationError(MailRelayError):
    """Unknown identifier or bad secret / API key."""
    pass


class AccountDisabledError(AuthenticationError):
    """Credentials matched but the account is not active."""
    pass


class RelayDeniedError(MailRelayError):
    """Recipient domain is not on the relay allow-list."""

    def __init__(self, address: str, domain: str):
        super().__init__(f"Relay access denied: recipient domain not allowed ({domain or 'none'})")
        self.address = address
        self.domain = domain


class ParseError(MailRelayError):
    """Inbound bytes could not be parsed into a message."""

    def __init__(self, message: str, message_id: Optional[str] = None):
        super().__init__(message)
        self.message_id = message_id


class NotFoundError(MailRelayError):
    """Message or attachment has no resolvable record."""
    pass


class AccessDeniedError(MailRelayError):
    """Record exists but the user neither sent nor received it."""
    pass


class InvalidRecipientError(MailRelayError):
    """Outbound recipient address has no domain."""
    pass


class DeliveryError(MailRelayError):
    """Downstream delivery channel failed."""

    def __init__(self, message: str, smtp_code: Optional[int] = None):
        super().__init__(message)
        self.smtp_code = smtp_code


class StorageError(MailRelayError):
    """Record store read/write failure."""
    pass
