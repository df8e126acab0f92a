"""Unit tests for MailService retrieval and access control"""

import pytest

from mailrelay.domain.mail.errors import AccessDeniedError, NotFoundError
from mailrelay.domain.mail.models import AttachmentBlob, Direction, MessageRecord

from ..conftest import USER_A, USER_B


def _save(record_store, message_id, direction=Direction.RECEIVED, user=None,
          to=USER_B, date="2025-01-06T10:00:00+00:00"):
    record = MessageRecord(
        id=message_id,
        type=direction,
        user=user,
        from_=user or USER_A,
        to=to,
        subject=f"Subject {message_id}",
        date=date,
    )
    record_store.save_parsed(message_id, record, direction)
    return record


class TestGetEmails:

    def test_received_filtered_by_recipient(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        _save(record_store, "1-b", to="someone@domain.com")

        assert [r.id for r in mail_service.get_emails(USER_B)] == ["1-a"]

    def test_sent_filtered_by_sender(self, mail_service, record_store):
        _save(record_store, "1-s", Direction.SENT, user=USER_A)

        assert [r.id for r in mail_service.get_emails(USER_A, Direction.SENT)] == ["1-s"]
        assert mail_service.get_emails(USER_B, Direction.SENT) == []

    def test_all_merges_directions_newest_first(self, mail_service, record_store):
        _save(record_store, "1-in", to=USER_A, date="2025-01-01T00:00:00+00:00")
        _save(record_store, "1-out", Direction.SENT, user=USER_A, date="2025-02-01T00:00:00+00:00")

        assert [r.id for r in mail_service.get_emails(USER_A, "all")] == ["1-out", "1-in"]

    def test_no_user_lists_everything(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        _save(record_store, "1-b", to=USER_A)

        assert len(mail_service.get_emails(None)) == 2


class TestGetEmailById:
    """Test not-found and access-denied are reported distinctly"""

    def test_missing_is_not_found(self, mail_service):
        with pytest.raises(NotFoundError):
            mail_service.get_email_by_id("1-missing", USER_B)

    def test_recipient_can_read(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        assert mail_service.get_email_by_id("1-a", USER_B).id == "1-a"

    def test_sender_can_read_received_copy(self, mail_service, record_store):
        _save(record_store, "1-a", user=USER_A, to=USER_B)
        assert mail_service.get_email_by_id("1-a", USER_A).id == "1-a"

    def test_stranger_denied(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        with pytest.raises(AccessDeniedError):
            mail_service.get_email_by_id("1-a", "user_c@domain.com")


class TestAttachments:

    def test_recipient_gets_path(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        record_store.save_attachments("1-a", [AttachmentBlob("a.txt", b"abc")], Direction.RECEIVED)

        path = mail_service.get_attachment_path("1-a", "a.txt", Direction.RECEIVED, USER_B)
        assert path.read_bytes() == b"abc"

    def test_missing_blob_not_found(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        with pytest.raises(NotFoundError):
            mail_service.get_attachment_path("1-a", "nope.txt", Direction.RECEIVED, USER_B)

    def test_received_attachment_requires_recipient(self, mail_service, record_store):
        _save(record_store, "1-a", user=USER_A, to=USER_B)
        record_store.save_attachments("1-a", [AttachmentBlob("a.txt", b"abc")], Direction.RECEIVED)

        with pytest.raises(AccessDeniedError):
            mail_service.get_attachment_path("1-a", "a.txt", Direction.RECEIVED, USER_A)

    def test_sent_attachment_requires_sender(self, mail_service, record_store):
        _save(record_store, "1-s", Direction.SENT, user=USER_A, to=USER_B)
        record_store.save_attachments("1-s", [AttachmentBlob("a.txt", b"abc")], Direction.SENT)

        assert mail_service.get_attachment_path("1-s", "a.txt", Direction.SENT, USER_A).is_file()
        with pytest.raises(AccessDeniedError):
            mail_service.get_attachment_path("1-s", "a.txt", Direction.SENT, USER_B)


class TestStarring:
    """Test star/unstar go through the access check"""

    def test_star_and_list(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)

        mail_service.star_email(USER_B, "1-a")
        mail_service.star_email(USER_B, "1-a")

        assert [r.id for r in mail_service.get_starred_emails(USER_B)] == ["1-a"]
        assert mail_service.is_starred(USER_B, "1-a")

    def test_stranger_cannot_star(self, mail_service, record_store, star_index):
        _save(record_store, "42", to=USER_B)

        with pytest.raises(AccessDeniedError):
            mail_service.star_email("user_c@domain.com", "42")
        assert star_index.ids("user_c@domain.com") == []

    def test_star_missing_not_found(self, mail_service):
        with pytest.raises(NotFoundError):
            mail_service.star_email(USER_B, "1-missing")

    def test_unstar_unstarred_is_noop(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        mail_service.unstar_email(USER_B, "1-a")
        assert mail_service.get_starred_emails(USER_B) == []

    def test_user_required(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        with pytest.raises(AccessDeniedError):
            mail_service.star_email("", "1-a")


    def test_is_starred_requires_access(self, mail_service, record_store):
        _save(record_store, "1-a", to=USER_B)
        mail_service.star_email(USER_B, "1-a")

        assert mail_service.is_starred(USER_B, "1-a")
        with pytest.raises(AccessDeniedError):
            mail_service.is_starred("user_c@domain.com", "1-a")

    def test_lookalike_users_do_not_share_stars(self, mail_service, record_store):
        _save(record_store, "1-private", to="a#b@domain.com")
        mail_service.star_email("a#b@domain.com", "1-private")

        assert mail_service.get_starred_emails("a_b@domain.com") == []
        assert [r.id for r in mail_service.get_starred_emails("a#b@domain.com")] == ["1-private"]
