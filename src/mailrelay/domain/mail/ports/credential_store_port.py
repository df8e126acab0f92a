"""Credential Store Port - lookup of user credential records.

The relay never owns user accounts; it reaches whatever durable store
backs them through this interface only.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class CredentialRecord:
    """Credential record of one mail user.

    Attributes:
        email: Account identifier (lowercased address)
        password_hash: Hash of the SMTP password
        api_key_hash: Hash of the HTTP API key
        is_active: Disabled accounts may not authenticate anywhere
    """
    email: str
    password_hash: Optional[str]
    api_key_hash: Optional[str]
    is_active: bool = True


class CredentialStorePort(ABC):

    @abstractmethod
    def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        """Return the credential record for identifier, or None."""
        pass

    @abstractmethod
    def list_identifiers(self) -> List[str]:
        """All known account identifiers, sorted."""
        pass
