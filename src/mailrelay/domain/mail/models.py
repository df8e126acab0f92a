"""
Domain models for stored messages.
These are Pydantic models serialized as the JSON records of the record store.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    """Record store partition a message belongs to."""
    RECEIVED = "received"
    SENT = "sent"


class AttachmentMeta(BaseModel):
    """Attachment metadata kept inside a message record (no content)"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    filename: str
    content_type: Optional[str] = Field(None, alias="contentType")
    size: Optional[int] = None


class MessageRecord(BaseModel):
    """Immutable structured representation of one sent or received message"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    type: Direction
    user: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    subject: Optional[str] = None
    date: str
    text: Optional[str] = None
    html: Optional[str] = None
    attachments: List[AttachmentMeta] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ErrorRecord(BaseModel):
    """Failure record written when inbound bytes cannot be parsed"""
    id: str
    user: Optional[str] = None
    error: str
    error_type: str
    timestamp: str


@dataclass
class AttachmentBlob:
    """Attachment content ready to be written to the store."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StagedAttachment:
    """Uploaded file waiting in the staging area for an outbound send."""
    filename: str
    path: Path
    size: Optional[int] = None
    content_type: Optional[str] = None
