"""FastAPI dependencies resolving the services built in create_app().

Services live on ``app.state``; nothing here constructs them.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status

from .auth.credentials import CredentialValidator
from .config import Settings
from .domain.mail.errors import AuthenticationError
from .domain.mail.ports.credential_store_port import CredentialStorePort
from .domain.mail.ports.record_store_port import RecordStorePort
from .mailbox.service import MailService
from .outbound.service import OutboundRelay


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_mail_service(request: Request) -> MailService:
    return request.app.state.mail_service


def get_outbound_relay(request: Request) -> OutboundRelay:
    return request.app.state.outbound_relay


def get_validator(request: Request) -> CredentialValidator:
    return request.app.state.validator


def get_credential_store(request: Request) -> CredentialStorePort:
    return request.app.state.credential_store


def get_record_store(request: Request) -> RecordStorePort:
    return request.app.state.record_store


def get_request_user(
    settings: Annotated[Settings, Depends(get_settings_dep)],
    validator: Annotated[CredentialValidator, Depends(get_validator)],
    user: Optional[str] = Query(None, description="Mailbox owner (email address)"),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """Return the ``user`` query parameter, verified when API keys are required.

    A verified user is returned in the stored (lowercased) form.

    With API_REQUIRE_KEY enabled the caller must name a user and present
    that user's key; the unfiltered administrative view is then unavailable.
    """
    if not settings.API_REQUIRE_KEY:
        return user or None

    if not user or not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User and API key are required",
        )
    try:
        account = validator.verify(user, api_key=x_api_key)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    return account.email


MailServiceDep = Annotated[MailService, Depends(get_mail_service)]
RequestUser = Annotated[Optional[str], Depends(get_request_user)]
