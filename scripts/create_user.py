#!/usr/bin/env python3
"""Create a mail relay account.

Stores argon2id hashes of the password and API key; plaintext secrets are
never written to the database.

Usage:
    python scripts/create_user.py user@google.in --password secret --api-key key123
    python scripts/create_user.py user@google.in --api-key key123 --disabled

Environment Variables:
    DATABASE_URL: Credential database URL (default: sqlite:///./mailrelay.db)
    PASSWORD_PEPPER: Password hashing pepper
"""

import argparse
import sys

from sqlalchemy.exc import IntegrityError

from mailrelay.auth.password import hash_secret
from mailrelay.config import get_settings
from mailrelay.database import create_db_engine, create_session_factory, init_db
from mailrelay.domain.mail.addresses import is_valid_email, normalize_address
from mailrelay.infrastructure.credentials import SqlCredentialStore


def main(argv=None):
    """Create the account described by the command line arguments."""
    parser = argparse.ArgumentParser(description="Create a mail relay account")
    parser.add_argument("email", help="Account email address")
    parser.add_argument("--password", help="Password used for login and SMTP AUTH")
    parser.add_argument("--api-key", dest="api_key", help="API key used for sending")
    parser.add_argument("--disabled", action="store_true", help="Create the account disabled")
    args = parser.parse_args(argv)

    email = normalize_address(args.email)
    if not is_valid_email(email):
        print(f"ERROR: Invalid email address: {args.email}")
        sys.exit(1)

    if not args.password and not args.api_key:
        print("ERROR: At least one of --password or --api-key is required")
        sys.exit(1)

    settings = get_settings()
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    store = SqlCredentialStore(create_session_factory(engine))

    if store.find_by_identifier(email) is not None:
        print(f"ERROR: User with email {email} already exists")
        sys.exit(1)

    pepper = settings.PASSWORD_PEPPER
    try:
        record = store.add_user(
            email=email,
            password_hash=hash_secret(args.password, pepper) if args.password else None,
            api_key_hash=hash_secret(args.api_key, pepper) if args.api_key else None,
            is_active=not args.disabled,
        )
    except IntegrityError as e:
        print(f"ERROR: Failed to create user: {e}")
        sys.exit(1)

    print("SUCCESS: User created")
    print(f"  Email:  {record.email}")
    print(f"  Active: {record.is_active}")


if __name__ == "__main__":
    main()
