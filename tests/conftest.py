"""Pytest fixtures for the mail relay.

Provides reusable test fixtures for:
- A record store rooted in tmp_path
- An in-memory SQLite credential store with active and disabled accounts
- A CredentialValidator using the real Argon2 verifier
- A FastAPI TestClient wired to a fake delivery channel

Usage:
    def test_list(client, ingest):
        ingest(SIMPLE_MESSAGE)
        assert client.get("/emails").status_code == 200
"""

import os

# Set required environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")

from email.message import EmailMessage
from typing import List

import pytest
from fastapi.testclient import TestClient

from mailrelay.auth.credentials import Argon2SecretVerifier, CredentialValidator
from mailrelay.auth.password import hash_secret
from mailrelay.config import Settings
from mailrelay.database import create_db_engine, create_session_factory, init_db
from mailrelay.domain.mail.errors import DeliveryError
from mailrelay.domain.mail.ports.delivery_port import DeliveryChannelPort
from mailrelay.infrastructure.credentials import SqlCredentialStore
from mailrelay.infrastructure.ingest.ingestion_service import IngestionService
from mailrelay.infrastructure.storage import FilesystemRecordStore, StarIndex
from mailrelay.mailbox.service import MailService

TEST_PEPPER = os.environ["PASSWORD_PEPPER"]

USER_A = "user_a@google.in"
USER_B = "user_b@domain.com"
DISABLED_USER = "disabled@google.in"

PASSWORDS = {USER_A: "password-a", USER_B: "password-b", DISABLED_USER: "password-d"}
API_KEYS = {USER_A: "key-a-123", USER_B: "key-b-456", DISABLED_USER: "key-d-789"}


def build_message(
    from_addr: str = USER_A,
    to_addr: str = USER_B,
    subject: str = "Hello",
    text: str = "Hello there",
    date: str = "Mon, 06 Jan 2025 10:00:00 +0000",
) -> bytes:
    """Render a simple text message as wire bytes."""
    message = EmailMessage()
    message["From"] = from_addr
    message["To"] = to_addr
    message["Subject"] = subject
    message["Date"] = date
    message.set_content(text)
    return message.as_bytes()


class FakeDeliveryChannel(DeliveryChannelPort):
    """Records delivered messages instead of talking SMTP."""

    def __init__(self):
        self.delivered: List[EmailMessage] = []
        self.fail_with = None

    async def deliver(self, message: EmailMessage) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.delivered.append(message)
        return str(message["Message-ID"] or f"<fake-{len(self.delivered)}@test>")

    def fail(self, reason: str = "Connection refused") -> None:
        self.fail_with = DeliveryError(reason, smtp_code=421)


@pytest.fixture(scope="session")
def credential_hashes():
    """Argon2 hashes for every test account (computed once per session)"""
    return {
        email: (hash_secret(PASSWORDS[email], TEST_PEPPER), hash_secret(API_KEYS[email], TEST_PEPPER))
        for email in PASSWORDS
    }


@pytest.fixture
def credential_store(credential_hashes):
    """In-memory credential store with user_a, user_b and a disabled account"""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    store = SqlCredentialStore(create_session_factory(engine))
    for email, (password_hash, api_key_hash) in credential_hashes.items():
        store.add_user(
            email=email,
            password_hash=password_hash,
            api_key_hash=api_key_hash,
            is_active=email != DISABLED_USER,
        )
    yield store
    engine.dispose()


@pytest.fixture
def validator(credential_store):
    return CredentialValidator(credential_store, Argon2SecretVerifier(TEST_PEPPER))


@pytest.fixture
def record_store(tmp_path):
    return FilesystemRecordStore(tmp_path / "emails")


@pytest.fixture
def star_index(tmp_path, record_store):
    return StarIndex(tmp_path / "emails" / "starred", record_store)


@pytest.fixture
def mail_service(record_store, star_index):
    return MailService(record_store, star_index)


@pytest.fixture
def ingestion(record_store):
    return IngestionService(record_store)


@pytest.fixture
def ingest(ingestion):
    """Ingest raw bytes and return the stored id"""
    def _ingest(raw: bytes, owner=None) -> str:
        return ingestion.ingest(raw, owner)
    return _ingest


@pytest.fixture
def delivery():
    return FakeDeliveryChannel()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        STORAGE_ROOT=tmp_path / "emails",
        DATABASE_URL="sqlite:///:memory:",
        PASSWORD_PEPPER=TEST_PEPPER,
        SMTP_ALLOWED_DOMAINS="google.in,domain.com",
        LOG_JSON=False,
    )


@pytest.fixture
def app(settings, record_store, credential_store, delivery):
    from mailrelay.main import create_app

    return create_app(
        settings=settings,
        record_store=record_store,
        credential_store=credential_store,
        delivery=delivery,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
