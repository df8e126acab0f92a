"""Authentication endpoint

POST /auth/login checks an address and API key. It reports a disabled
account separately from bad credentials so clients can tell users to
contact an admin.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..dependencies import get_validator
from ..domain.mail.errors import AccountDisabledError, AuthenticationError
from ..mailbox.schemas import LoginRequest, LoginResponse, LoginUser, SendErrorResponse
from .credentials import CredentialValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": SendErrorResponse}, 401: {"model": SendErrorResponse},
               403: {"model": SendErrorResponse}},
)
def login(
    body: LoginRequest,
    validator: Annotated[CredentialValidator, Depends(get_validator)],
):
    identifier = body.username or body.email
    if not identifier:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Username/email is required"},
        )

    try:
        account = validator.verify(identifier, api_key=body.apiKey or "")
    except AccountDisabledError:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"success": False, "error": "Your account is disabled, contact admin"},
        )
    except AuthenticationError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid username/email or API key"},
        )

    logger.info(f"Login successful: {account.email}")
    return LoginResponse(
        user=LoginUser(id=account.email, email=account.email, username=account.email),
    )
