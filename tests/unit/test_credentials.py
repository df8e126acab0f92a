"""Unit tests for secret hashing, the SQL credential store and validation

Tests cover:
- Argon2id hashing with pepper
- Credential lookup by identifier (case-insensitive)
- Password and API key verification
- Disabled accounts rejected even with correct credentials
"""

import pytest

from mailrelay.auth.credentials import CredentialValidator
from mailrelay.auth.password import hash_secret, verify_secret
from mailrelay.domain.mail.errors import AccountDisabledError, AuthenticationError

from ..conftest import API_KEYS, DISABLED_USER, PASSWORDS, TEST_PEPPER, USER_A, USER_B


class TestHashSecret:
    """Test Argon2id hashing"""

    def test_argon2id_format(self):
        hashed = hash_secret("key-123", TEST_PEPPER)
        assert hashed.startswith("$argon2id$")
        assert "m=65536" in hashed

    def test_salted(self):
        assert hash_secret("key-123", TEST_PEPPER) != hash_secret("key-123", TEST_PEPPER)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            hash_secret("", TEST_PEPPER)

    def test_pepper_from_environment(self, monkeypatch):
        monkeypatch.setenv("PASSWORD_PEPPER", "env-pepper")
        hashed = hash_secret("key-123")
        assert verify_secret("key-123", hashed, "env-pepper")

    def test_missing_pepper_raises(self, monkeypatch):
        monkeypatch.delenv("PASSWORD_PEPPER", raising=False)
        with pytest.raises(ValueError):
            hash_secret("key-123")


class TestVerifySecret:

    def test_correct_secret(self):
        assert verify_secret("key-123", hash_secret("key-123", TEST_PEPPER), TEST_PEPPER)

    def test_wrong_secret(self):
        assert not verify_secret("key-124", hash_secret("key-123", TEST_PEPPER), TEST_PEPPER)

    def test_wrong_pepper(self):
        assert not verify_secret("key-123", hash_secret("key-123", TEST_PEPPER), "other-pepper")

    def test_malformed_or_missing_hash(self):
        assert not verify_secret("key-123", "not-a-hash", TEST_PEPPER)
        assert not verify_secret("key-123", None, TEST_PEPPER)
        assert not verify_secret(None, "whatever", TEST_PEPPER)


class TestSqlCredentialStore:
    """Test account lookup"""

    def test_find_is_case_insensitive(self, credential_store):
        record = credential_store.find_by_identifier("USER_A@Google.in")
        assert record.email == USER_A
        assert record.is_active

    def test_unknown_identifier(self, credential_store):
        assert credential_store.find_by_identifier("nobody@google.in") is None
        assert credential_store.find_by_identifier("") is None

    def test_list_identifiers_sorted(self, credential_store):
        assert credential_store.list_identifiers() == sorted([USER_A, USER_B, DISABLED_USER])

    def test_invalid_email_rejected(self, credential_store):
        with pytest.raises(ValueError):
            credential_store.add_user("not-an-email", None, None)


class PlainVerifier:
    """Test double comparing secrets to 'hash:<secret>' strings"""

    def verify(self, secret, stored_hash):
        return stored_hash == f"hash:{secret}"


class TestCredentialValidator:
    """Test identifier resolution and credential checks"""

    def test_verify_api_key(self, validator):
        assert validator.verify(USER_A, api_key=API_KEYS[USER_A]).email == USER_A

    def test_verify_password(self, validator):
        assert validator.verify(USER_B, secret=PASSWORDS[USER_B]).email == USER_B

    def test_identifier_normalized(self, validator):
        assert validator.verify("  User_A@Google.IN ", api_key=API_KEYS[USER_A]).email == USER_A

    def test_password_is_not_an_api_key(self, validator):
        with pytest.raises(AuthenticationError):
            validator.verify(USER_A, api_key=PASSWORDS[USER_A])

    def test_unknown_user(self, validator):
        with pytest.raises(AuthenticationError):
            validator.verify("nobody@google.in", secret="x")

    def test_no_credential_supplied(self, validator):
        with pytest.raises(AuthenticationError):
            validator.verify(USER_A)

    def test_disabled_account_rejected(self, validator):
        with pytest.raises(AccountDisabledError):
            validator.verify(DISABLED_USER, api_key=API_KEYS[DISABLED_USER])

    def test_disabled_account_bad_key_is_plain_failure(self, validator):
        with pytest.raises(AuthenticationError) as exc_info:
            validator.verify(DISABLED_USER, api_key="wrong")
        assert not isinstance(exc_info.value, AccountDisabledError)

    def test_pluggable_verifier(self, credential_store):
        credential_store.add_user("plain@google.in", "hash:pw", "hash:key")
        validator = CredentialValidator(credential_store, PlainVerifier())

        assert validator.verify("plain@google.in", secret="pw").email == "plain@google.in"
        assert validator.resolve("PLAIN@google.in").email == "plain@google.in"
        with pytest.raises(AuthenticationError):
            validator.verify("plain@google.in", api_key="pw")
