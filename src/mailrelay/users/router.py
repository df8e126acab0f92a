"""User directory endpoint (no credentials are ever returned)"""

from typing import Annotated, List

from fastapi import APIRouter, Depends

from ..dependencies import get_credential_store
from ..domain.mail.ports.credential_store_port import CredentialStorePort
from ..mailbox.schemas import UserSummary

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserSummary])
def list_users(store: Annotated[CredentialStorePort, Depends(get_credential_store)]):
    return [UserSummary(username=email, email=email) for email in store.list_identifiers()]
