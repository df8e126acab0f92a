"""Health endpoint reporting storage and server configuration."""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends

from ..config import Settings
from ..dependencies import get_credential_store, get_record_store, get_settings_dep
from ..domain.mail.dates import format_date_for_storage, get_local_date
from ..domain.mail.ports.credential_store_port import CredentialStorePort
from ..domain.mail.ports.record_store_port import RecordStorePort

router = APIRouter(tags=["Observability"])


@router.get("/health", summary="Health check endpoint")
def health_check(
    settings: Annotated[Settings, Depends(get_settings_dep)],
    record_store: Annotated[RecordStorePort, Depends(get_record_store)],
    credential_store: Annotated[CredentialStorePort, Depends(get_credential_store)],
) -> Dict[str, Any]:
    """Report storage directories, known users and listener configuration."""
    return {
        "status": "ok",
        "timestamp": format_date_for_storage(get_local_date()),
        "users": credential_store.list_identifiers(),
        "directories": record_store.directory_status(),
        "server": {
            "smtp": {
                "host": settings.SMTP_HOST,
                "port": settings.SMTP_PORT,
                "allowedDomains": settings.allowed_domains,
                "authOptional": settings.SMTP_AUTH_OPTIONAL,
            },
            "api": {
                "host": settings.API_HOST,
                "port": settings.API_PORT,
            },
        },
    }
