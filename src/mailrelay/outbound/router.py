"""Send API endpoint

POST /send/email accepts a multipart form with the message fields, the
sender's credentials and any number of attachment files. Uploads are staged
under the upload directory and handed to the OutboundRelay, which moves
them into sent storage once delivery succeeds.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse

from ..config import Settings
from ..dependencies import get_outbound_relay, get_settings_dep
from ..domain.mail.errors import (
    AuthenticationError,
    DeliveryError,
    InvalidRecipientError,
)
from ..domain.mail.models import StagedAttachment
from ..mailbox.schemas import SendErrorResponse, SendResponse
from .service import OutboundRelay, SendRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/send", tags=["Send"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=SendErrorResponse(error=message).model_dump(),
    )


async def stage_upload(upload: UploadFile, upload_dir: Path) -> StagedAttachment:
    """Copy an uploaded file into the staging directory."""
    content = await upload.read()
    target = upload_dir / uuid.uuid4().hex
    await asyncio.to_thread(_write_staged, target, content)
    return StagedAttachment(
        filename=upload.filename or target.name,
        path=target,
        size=len(content),
        content_type=upload.content_type,
    )


def _write_staged(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


@router.post(
    "/email",
    response_model=SendResponse,
    responses={
        400: {"model": SendErrorResponse},
        401: {"model": SendErrorResponse},
        403: {"model": SendErrorResponse},
        502: {"model": SendErrorResponse},
    },
)
async def send_email(
    relay: Annotated[OutboundRelay, Depends(get_outbound_relay)],
    settings: Annotated[Settings, Depends(get_settings_dep)],
    to: str = Form(""),
    subject: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    html: Optional[str] = Form(None),
    user: Optional[str] = Form(None),
    api_key: Optional[str] = Form(None, alias="apiKey"),
    attachments: List[UploadFile] = File(default=[]),
):
    """Send an email with optional attachments.

    Returns the delivery channel's message id and the id of the stored
    sent copy.
    """
    if not user or not api_key:
        return _error(status.HTTP_400_BAD_REQUEST, "User and API key are required")

    staged: List[StagedAttachment] = []
    try:
        for upload in attachments:
            staged.append(await stage_upload(upload, settings.upload_dir))

        result = await relay.send(
            SendRequest(user=user, to=to, subject=subject, text=text, html=html, api_key=api_key),
            staged,
        )
    except AuthenticationError as e:
        logger.warning(f"Send refused for {user}: {e}")
        return _error(status.HTTP_401_UNAUTHORIZED, "Authentication failed")
    except InvalidRecipientError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except DeliveryError as e:
        logger.error(f"Failed to send email for {user}: {e}")
        return _error(status.HTTP_502_BAD_GATEWAY, str(e))
    finally:
        # uploads moved into sent storage are already gone from staging
        await asyncio.to_thread(_discard, staged)

    return SendResponse(messageId=result.delivery_id, emailId=result.email_id)


def _discard(staged: List[StagedAttachment]) -> None:
    for item in staged:
        item.path.unlink(missing_ok=True)
