"""Mail domain: message records, addresses, ownership and error taxonomy"""

from .errors import (
    AccessDeniedError,
    AccountDisabledError,
    AuthenticationError,
    DeliveryError,
    InvalidRecipientError,
    MailRelayError,
    NotFoundError,
    ParseError,
    RelayDeniedError,
    StorageError,
)
from .models import (
    AttachmentBlob,
    AttachmentMeta,
    Direction,
    ErrorRecord,
    MessageRecord,
    StagedAttachment,
)

__all__ = [
    "AccessDeniedError",
    "AccountDisabledError",
    "AuthenticationError",
    "DeliveryError",
    "InvalidRecipientError",
    "MailRelayError",
    "NotFoundError",
    "ParseError",
    "RelayDeniedError",
    "StorageError",
    "AttachmentBlob",
    "AttachmentMeta",
    "Direction",
    "ErrorRecord",
    "MessageRecord",
    "StagedAttachment",
]
