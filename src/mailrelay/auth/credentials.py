"""Credential validation for SMTP AUTH and the HTTP API.

The validator is the only way the relay looks at user accounts. It resolves
an identifier through a CredentialStorePort and checks a secret with a
pluggable SecretVerifier, so neither the account store nor the hashing
scheme leaks into the rest of the code.
"""

import logging
from typing import Optional, Protocol

from ..domain.mail.errors import AccountDisabledError, AuthenticationError
from ..domain.mail.ports.credential_store_port import CredentialRecord, CredentialStorePort
from .password import verify_secret

logger = logging.getLogger(__name__)


class SecretVerifier(Protocol):
    def verify(self, secret: str, stored_hash: Optional[str]) -> bool:
        ...


class Argon2SecretVerifier:
    """Argon2id + pepper verification (see auth.password)."""

    def __init__(self, pepper: Optional[str] = None):
        self.pepper = pepper

    def verify(self, secret: str, stored_hash: Optional[str]) -> bool:
        return verify_secret(secret, stored_hash, self.pepper)


class CredentialValidator:
    """Resolve identifiers and verify passwords or API keys.

    Inactive accounts are rejected by verify() wherever it is called, i.e.
    both at SMTP AUTH and at every API authentication.
    """

    def __init__(self, store: CredentialStorePort, verifier: SecretVerifier):
        self.store = store
        self.verifier = verifier

    def resolve(self, identifier: Optional[str]) -> Optional[CredentialRecord]:
        if not identifier:
            return None
        return self.store.find_by_identifier(identifier.strip().lower())

    def verify(
        self,
        identifier: Optional[str],
        secret: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> CredentialRecord:
        """Check identifier against a password (secret) or an API key.

        Exactly the supplied credential is checked; supplying neither fails.

        Returns:
            CredentialRecord: The verified account

        Raises:
            AuthenticationError: Unknown identifier or mismatching credential
            AccountDisabledError: Credential matched an inactive account
        """
        record = self.resolve(identifier)
        if record is None:
            logger.warning(f"Authentication failed: unknown identifier {identifier!r}")
            raise AuthenticationError("Invalid username or credentials")

        if api_key is not None:
            matched = self.verifier.verify(api_key, record.api_key_hash)
        elif secret is not None:
            matched = self.verifier.verify(secret, record.password_hash)
        else:
            matched = False

        if not matched:
            logger.warning(f"Authentication failed: bad credentials for {record.email}")
            raise AuthenticationError("Invalid username or credentials")

        if not record.is_active:
            logger.warning(f"Authentication refused: account disabled {record.email}")
            raise AccountDisabledError("Your account is disabled, contact admin")

        return record
