"""Secret hashing and verification using Argon2id

Both SMTP passwords and HTTP API keys are stored as Argon2id hashes of the
secret combined with a server-side pepper. Nothing is compared in clear
text.

OWASP Parameters:
- Memory cost: 65536 KB (64 MB)
- Time cost: 3 iterations
- Parallelism: 4 threads
"""

import os
from typing import Optional

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


# OWASP recommended parameters for Argon2id
_hasher = PasswordHasher(
    memory_cost=65536,  # 64 MB
    time_cost=3,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID  # Argon2id variant
)


def _get_pepper(pepper: Optional[str] = None) -> str:
    """Return the explicit pepper, or PASSWORD_PEPPER from the environment.

    Raises:
        ValueError: If no pepper is available
    """
    pepper = pepper or os.getenv('PASSWORD_PEPPER')
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return pepper


def hash_secret(secret: str, pepper: Optional[str] = None) -> str:
    """Hash a password or API key using Argon2id with pepper.

    Args:
        secret: Plain text secret to hash
        pepper: Server-side pepper (defaults to PASSWORD_PEPPER)

    Returns:
        str: Argon2id hash string (format: $argon2id$v=19$m=65536,t=3,p=4$...$...)

    Raises:
        ValueError: If no pepper is available or secret is empty
    """
    if not secret:
        raise ValueError("Secret cannot be empty")

    return _hasher.hash(secret + _get_pepper(pepper))


def verify_secret(secret: Optional[str], hash: Optional[str], pepper: Optional[str] = None) -> bool:
    """Verify a password or API key against an Argon2id hash.

    Returns:
        bool: True if the secret matches, False otherwise (including when
        either side is empty or the stored hash is malformed)

    Raises:
        ValueError: If no pepper is available
    """
    if not secret or not hash:
        return False

    peppered = secret + _get_pepper(pepper)

    try:
        _hasher.verify(hash, peppered)
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False
