"""Unit tests for OutboundRelay

Delivery goes to an in-memory channel; tests check what is composed and
what is (and is not) persisted.
"""

import threading

import pytest

from mailrelay.domain.mail.errors import (
    AuthenticationError,
    DeliveryError,
    InvalidRecipientError,
)
from mailrelay.domain.mail.models import Direction, StagedAttachment
from mailrelay.outbound.service import OutboundRelay, SendRequest, compose_message

from ..conftest import API_KEYS, DISABLED_USER, USER_A, USER_B


@pytest.fixture
def relay(validator, delivery, record_store):
    return OutboundRelay(validator, delivery, record_store)


def _stage(tmp_path, name, content, content_type=None):
    path = tmp_path / f"staged-{name}-{len(content)}"
    path.write_bytes(content)
    return StagedAttachment(filename=name, path=path, size=len(content), content_type=content_type)


class TestSend:

    @pytest.mark.asyncio
    async def test_send_with_two_attachments(self, relay, delivery, record_store, tmp_path):
        staged = [
            _stage(tmp_path, "a.pdf", b"%PDF-a", "application/pdf"),
            _stage(tmp_path, "b.txt", b"bee", "text/plain"),
        ]
        request = SendRequest(user=USER_A, to=USER_B, subject="Files", text="see attached",
                              api_key=API_KEYS[USER_A])

        result = await relay.send(request, staged)

        record = record_store.get_by_id(result.email_id)
        assert record.type == Direction.SENT
        assert record.user == USER_A
        assert record.from_ == USER_A
        assert [a.filename for a in record.attachments] == ["a.pdf", "b.txt"]
        for name, content in (("a.pdf", b"%PDF-a"), ("b.txt", b"bee")):
            assert record_store.attachment_exists(result.email_id, name, Direction.SENT)
            path = record_store.attachment_path(result.email_id, name, Direction.SENT)
            assert path.read_bytes() == content
        assert not any(s.path.exists() for s in staged)

        assert len(delivery.delivered) == 1
        assert result.delivery_id == delivery.delivered[0]["Message-ID"]

    @pytest.mark.asyncio
    async def test_sent_record_listed_for_sender(self, relay, record_store):
        await relay.send(SendRequest(user=USER_A, to=USER_B, text="hi", api_key=API_KEYS[USER_A]))

        records = record_store.list_by_owner_and_direction(USER_A, Direction.SENT)
        assert len(records) == 1
        assert records[0].to == USER_B
        assert record_store.list_by_owner_and_direction(USER_B, Direction.SENT) == []

    @pytest.mark.asyncio
    async def test_duplicate_attachment_names_made_unique(self, relay, record_store, tmp_path):
        staged = [_stage(tmp_path, "x.txt", b"one"), _stage(tmp_path, "x.txt", b"two!")]

        result = await relay.send(
            SendRequest(user=USER_A, to=USER_B, api_key=API_KEYS[USER_A]), staged
        )

        record = record_store.get_by_id(result.email_id)
        assert [a.filename for a in record.attachments] == ["x.txt", "x-1.txt"]

    @pytest.mark.asyncio
    async def test_credential_check_runs_off_event_loop(self, relay):
        verify = relay.validator.verify
        threads = []

        def recording_verify(*args, **kwargs):
            threads.append(threading.get_ident())
            return verify(*args, **kwargs)

        relay.validator.verify = recording_verify
        await relay.send(SendRequest(user=USER_A, to=USER_B, api_key=API_KEYS[USER_A]))

        assert len(threads) == 1
        assert threads[0] != threading.get_ident()


class TestSendFailures:
    """Test nothing is persisted when a send is refused or fails"""

    @pytest.mark.asyncio
    async def test_bad_api_key(self, relay, delivery, record_store):
        with pytest.raises(AuthenticationError):
            await relay.send(SendRequest(user=USER_A, to=USER_B, api_key="wrong"))
        assert delivery.delivered == []
        assert record_store.list_by_owner_and_direction(None, Direction.SENT) == []

    @pytest.mark.asyncio
    async def test_disabled_sender(self, relay, delivery):
        with pytest.raises(AuthenticationError):
            await relay.send(SendRequest(user=DISABLED_USER, to=USER_B,
                                         api_key=API_KEYS[DISABLED_USER]))
        assert delivery.delivered == []

    @pytest.mark.asyncio
    async def test_recipient_without_domain(self, relay, delivery):
        with pytest.raises(InvalidRecipientError):
            await relay.send(SendRequest(user=USER_A, to="nobody", api_key=API_KEYS[USER_A]))
        assert delivery.delivered == []

    @pytest.mark.asyncio
    async def test_delivery_failure_writes_nothing(self, relay, delivery, record_store, tmp_path):
        delivery.fail("Connection refused")
        staged = [_stage(tmp_path, "a.pdf", b"%PDF-a")]

        with pytest.raises(DeliveryError):
            await relay.send(SendRequest(user=USER_A, to=USER_B, api_key=API_KEYS[USER_A]), staged)

        assert record_store.list_by_owner_and_direction(None, Direction.SENT) == []
        assert list((record_store.root / "sent_attachments").iterdir()) == []
        assert staged[0].path.exists()


class TestComposeMessage:

    def test_headers_and_bodies(self, tmp_path):
        request = SendRequest(user=USER_A, to=USER_B, subject="Hello", text="plain",
                              html="<b>rich</b>")
        message = compose_message(USER_A, request, [_stage(tmp_path, "a.csv", b"1,2")])

        assert message["To"] == USER_B
        assert message["Subject"] == "Hello"
        assert USER_A in message["From"]
        assert message["Message-ID"].endswith("@google.in>")
        assert message.get_body(preferencelist=("plain",)).get_content().strip() == "plain"
        assert message.get_body(preferencelist=("html",)).get_content().strip() == "<b>rich</b>"

        attachments = list(message.iter_attachments())
        assert [a.get_filename() for a in attachments] == ["a.csv"]
        assert attachments[0].get_content_type() == "text/csv"
