"""SQL Credential Store - CredentialStorePort on top of SQLAlchemy."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from ...database import session_scope
from ...domain.mail.ports.credential_store_port import CredentialRecord, CredentialStorePort
from ...models.mail_user import MailUser

logger = logging.getLogger(__name__)


class SqlCredentialStore(CredentialStorePort):
    """Reads mail_user rows; each lookup runs in its own short session."""

    def __init__(self, session_factory: sessionmaker):
        self._scope = session_scope(session_factory)

    def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        if not identifier:
            return None

        with self._scope() as session:
            user = session.execute(
                select(MailUser).where(MailUser.email == identifier.lower())
            ).scalar_one_or_none()
            if user is None:
                return None
            return _to_record(user)

    def list_identifiers(self) -> List[str]:
        with self._scope() as session:
            return list(session.execute(
                select(MailUser.email).order_by(MailUser.email.asc())
            ).scalars())

    def add_user(
        self,
        email: str,
        password_hash: Optional[str],
        api_key_hash: Optional[str],
        is_active: bool = True,
    ) -> CredentialRecord:
        """Insert a new account row (used by provisioning scripts and tests)."""
        with self._scope() as session:
            user = MailUser(
                email=email,
                password_hash=password_hash,
                api_key_hash=api_key_hash,
                is_active=is_active,
            )
            session.add(user)
            session.flush()
            logger.info(f"Created mail user: {user.email}")
            return _to_record(user)


def _to_record(user: MailUser) -> CredentialRecord:
    return CredentialRecord(
        email=user.email,
        password_hash=user.password_hash,
        api_key_hash=user.api_key_hash,
        is_active=bool(user.is_active),
    )
