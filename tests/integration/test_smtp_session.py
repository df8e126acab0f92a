"""Integration tests driving a real aiosmtpd listener with smtplib

Each test starts the relay's Controller on a free localhost port and talks
to it over a socket, exercising the session phases end to end.
"""

import smtplib
import socket

import pytest

from mailrelay.domain.mail.models import Direction
from mailrelay.infrastructure.ingest.server import create_smtp_controller

from ..conftest import PASSWORDS, USER_A, USER_B, build_message

pytestmark = pytest.mark.integration


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def smtp_settings(settings):
    return settings.model_copy(update={"SMTP_HOST": "127.0.0.1", "SMTP_PORT": _free_port()})


@pytest.fixture
def smtp_server(smtp_settings, ingestion, validator):
    controller = create_smtp_controller(smtp_settings, ingestion, validator)
    controller.start()
    yield smtp_settings
    controller.stop()


@pytest.fixture
def strict_smtp_server(smtp_settings, ingestion, validator):
    strict = smtp_settings.model_copy(update={"SMTP_AUTH_OPTIONAL": False})
    controller = create_smtp_controller(strict, ingestion, validator)
    controller.start()
    yield strict
    controller.stop()


def _connect(settings) -> smtplib.SMTP:
    return smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)


class TestInboundSession:
    """Test complete SMTP transactions"""

    def test_anonymous_delivery_to_allowed_domain(self, smtp_server, record_store):
        with _connect(smtp_server) as client:
            client.sendmail(USER_A, [USER_B], build_message(subject="Hi"))

        records = record_store.list_by_owner_and_direction(USER_B, Direction.RECEIVED)
        assert len(records) == 1
        assert records[0].subject == "Hi"
        assert records[0].user is None

    def test_authenticated_session_records_user(self, smtp_server, record_store):
        with _connect(smtp_server) as client:
            client.login(USER_A, PASSWORDS[USER_A])
            client.sendmail(USER_A, [USER_B], build_message(subject="Signed in"))

        records = record_store.list_by_owner_and_direction(USER_B, Direction.RECEIVED)
        assert [r.user for r in records] == [USER_A]

    def test_bad_password_rejected(self, smtp_server):
        with _connect(smtp_server) as client:
            with pytest.raises(smtplib.SMTPAuthenticationError):
                client.login(USER_A, "wrong-password")

    def test_relay_denied_before_data(self, smtp_server, record_store):
        with _connect(smtp_server) as client:
            client.ehlo()
            client.mail(USER_A)
            code, _ = client.rcpt("someone@evil.com")
            assert code == 550
            client.rset()

            with pytest.raises(smtplib.SMTPRecipientsRefused):
                client.sendmail(USER_A, ["someone@evil.com"], build_message(to_addr="someone@evil.com"))

        assert list((record_store.root / "raw").iterdir()) == []
        assert list((record_store.root / "parsed").iterdir()) == []

    def test_relay_denied_for_authenticated_user(self, smtp_server, record_store):
        with _connect(smtp_server) as client:
            client.login(USER_A, PASSWORDS[USER_A])
            with pytest.raises(smtplib.SMTPRecipientsRefused):
                client.sendmail(USER_A, ["someone@evil.com"], build_message(to_addr="someone@evil.com"))

        assert list((record_store.root / "raw").iterdir()) == []

    def test_data_before_rcpt_refused(self, smtp_server):
        with _connect(smtp_server) as client:
            client.ehlo()
            code, _ = client.docmd("DATA")
            assert code == 503

    def test_unparseable_body_gets_transient_failure(self, smtp_server, record_store):
        with _connect(smtp_server) as client:
            with pytest.raises(smtplib.SMTPDataError) as exc_info:
                client.sendmail(USER_A, [USER_B], b"this is not an email at all\r\n")
            assert exc_info.value.smtp_code == 451

        assert len(list((record_store.root / "raw").iterdir())) == 1
        assert len(list((record_store.root / "errors").iterdir())) == 1


class TestAuthRequired:
    """Test the listener refuses anonymous mail when auth is mandatory"""

    def test_anonymous_mail_refused(self, strict_smtp_server):
        with _connect(strict_smtp_server) as client:
            with pytest.raises(smtplib.SMTPSenderRefused):
                client.sendmail(USER_A, [USER_B], build_message())

    def test_authenticated_mail_accepted(self, strict_smtp_server, record_store):
        with _connect(strict_smtp_server) as client:
            client.login(USER_A, PASSWORDS[USER_A])
            client.sendmail(USER_A, [USER_B], build_message())

        assert len(record_store.list_by_owner_and_direction(USER_B, Direction.RECEIVED)) == 1
