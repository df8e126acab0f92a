"""Mailbox API endpoints

Provides read access to received, sent and merged mailboxes, single
messages and attachment downloads. All lookups are scoped to the ``user``
query parameter through MailService's ownership checks.
"""

import logging
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Query
from fastapi.responses import FileResponse, RedirectResponse

from ..dependencies import MailServiceDep, RequestUser
from ..domain.mail.models import Direction, MessageRecord
from .schemas import ErrorResponse

logger = logging.getLogger(__name__)

_ERRORS = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}

received_router = APIRouter(prefix="/emails", tags=["Received"])
sent_router = APIRouter(prefix="/sent-emails", tags=["Sent"])
all_router = APIRouter(prefix="/all-emails", tags=["All"])


@received_router.get("", response_model=List[MessageRecord])
def list_received(
    mail_service: MailServiceDep,
    user: RequestUser,
    type: Optional[str] = Query(None, description="'sent' redirects to /sent-emails"),
):
    """List received emails for user, newest first (all users if omitted)."""
    if type == Direction.SENT.value:
        return RedirectResponse(f"/sent-emails?{urlencode({'user': user or ''})}")
    return mail_service.get_emails(user, Direction.RECEIVED)


@received_router.get("/{email_id}", response_model=MessageRecord, responses=_ERRORS)
def get_email(email_id: str, mail_service: MailServiceDep, user: RequestUser):
    return mail_service.get_email_by_id(email_id, user)


@received_router.get("/{email_id}/attachments/{filename}", responses=_ERRORS)
def get_received_attachment(
    email_id: str,
    filename: str,
    mail_service: MailServiceDep,
    user: RequestUser,
):
    path = mail_service.get_attachment_path(email_id, filename, Direction.RECEIVED, user)
    return FileResponse(path, filename=filename)


@sent_router.get("", response_model=List[MessageRecord])
def list_sent(mail_service: MailServiceDep, user: RequestUser):
    return mail_service.get_emails(user, Direction.SENT)


@sent_router.get("/{email_id}", response_model=MessageRecord, responses=_ERRORS)
def get_sent_email(email_id: str, mail_service: MailServiceDep, user: RequestUser):
    return mail_service.get_email_by_id(email_id, user)


@sent_router.get("/{email_id}/attachments/{filename}", responses=_ERRORS)
def get_sent_attachment(
    email_id: str,
    filename: str,
    mail_service: MailServiceDep,
    user: RequestUser,
):
    path = mail_service.get_attachment_path(email_id, filename, Direction.SENT, user)
    return FileResponse(path, filename=filename)


@all_router.get("", response_model=List[MessageRecord])
def list_all(mail_service: MailServiceDep, user: RequestUser):
    """Received and sent emails merged, newest first."""
    return mail_service.get_emails(user, "all")
