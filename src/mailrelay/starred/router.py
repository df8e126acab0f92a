"""Starred email endpoints

GET lists a user's starred emails or reports whether one is starred;
POST/DELETE star or unstar one. Every route is limited to emails the
user sent or received, and both mutations are idempotent.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from ..dependencies import MailServiceDep, RequestUser
from ..domain.mail.models import MessageRecord
from ..mailbox.schemas import ErrorResponse, StarStatusResponse, SuccessResponse

router = APIRouter(prefix="/starred", tags=["Starred"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def _require(user):
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is required")
    return user


@router.get("", response_model=List[MessageRecord], responses=_ERRORS)
def list_starred(mail_service: MailServiceDep, user: RequestUser):
    return mail_service.get_starred_emails(_require(user))


@router.get("/{email_id}", response_model=StarStatusResponse, responses=_ERRORS)
def star_status(email_id: str, mail_service: MailServiceDep, user: RequestUser):
    return StarStatusResponse(starred=mail_service.is_starred(_require(user), email_id))


@router.post("/{email_id}", response_model=SuccessResponse, responses=_ERRORS)
def star(email_id: str, mail_service: MailServiceDep, user: RequestUser):
    mail_service.star_email(_require(user), email_id)
    return SuccessResponse()


@router.delete("/{email_id}", response_model=SuccessResponse, responses=_ERRORS)
def unstar(email_id: str, mail_service: MailServiceDep, user: RequestUser):
    mail_service.unstar_email(_require(user), email_id)
    return SuccessResponse()
