"""
Tests for lease_kernel.services.notification_dispatcher.

Deduplication is keyed on (user, type, related id) within the window;
``send`` bypasses it; ``mark_read`` only touches the caller's own rows.
"""

from datetime import date
from uuid import uuid4

import pytest

from lease_kernel.domain import notices
from lease_kernel.exceptions import ValidationError
from lease_kernel.models import Notification
from lease_kernel.services.notification_dispatcher import NotificationDispatcher


def _count(session, **filters) -> int:
    return session.query(Notification).filter_by(**filters).count()


class TestNotify:
    def test_duplicate_within_window_is_skipped(self, session, dispatcher, captured_logs):
        user_id, related_id = uuid4(), uuid4()
        first = dispatcher.notify(user_id, "contract", related_id, "t", "m")
        second = dispatcher.notify(user_id, "contract", related_id, "t", "m")

        assert first is not None
        assert second is None
        assert _count(session, user_id=user_id) == 1
        assert any(r["message"] == "notification_skipped_duplicate" for r in captured_logs())

    def test_duplicate_after_window_is_inserted(self, session, dispatcher, clock):
        user_id, related_id = uuid4(), uuid4()
        dispatcher.notify(user_id, "bill", related_id, "t", "m")
        clock.advance(24 * 3600 + 1)
        assert dispatcher.notify(user_id, "bill", related_id, "t", "m") is not None
        assert _count(session, user_id=user_id) == 2

    def test_distinct_keys_are_not_duplicates(self, session, dispatcher):
        user_id, related_id = uuid4(), uuid4()
        dispatcher.notify(user_id, "bill", related_id, "t", "m")
        dispatcher.notify(user_id, "contract", related_id, "t", "m")
        dispatcher.notify(user_id, "bill", uuid4(), "t", "m")
        dispatcher.notify(uuid4(), "bill", related_id, "t", "m")
        assert _count(session, user_id=user_id) == 3

    def test_null_related_id_deduplicates(self, dispatcher):
        user_id = uuid4()
        assert dispatcher.notify(user_id, "bill", None, "t", "m") is not None
        assert dispatcher.notify(user_id, "bill", None, "t", "m") is None

    def test_custom_window(self, session, clock):
        dispatcher = NotificationDispatcher(session, clock, dedup_window_hours=1)
        user_id, related_id = uuid4(), uuid4()
        dispatcher.notify(user_id, "bill", related_id, "t", "m")
        clock.advance(3601)
        assert dispatcher.notify(user_id, "bill", related_id, "t", "m") is not None

    def test_unknown_type_rejected(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.notify(uuid4(), "payment", None, "t", "m")

    def test_notify_notice_uses_notice_fields(self, dispatcher):
        view = dispatcher.notify_notice(
            uuid4(), notices.contract_expiring(date(2025, 2, 1)), uuid4(),
        )
        assert view.type == "contract"
        assert view.title == "สัญญาเช่าใกล้หมดอายุ"
        assert view.is_read is False


class TestSend:
    def test_send_is_not_deduplicated(self, session, dispatcher):
        user_id, related_id = uuid4(), uuid4()
        dispatcher.send(user_id, "bill", related_id, "t", "m")
        dispatcher.send(user_id, "bill", related_id, "t", "m")
        assert _count(session, user_id=user_id) == 2


class TestMarkRead:
    def test_marks_only_own_rows(self, session, dispatcher):
        owner, stranger = uuid4(), uuid4()
        mine = dispatcher.send(owner, "bill", None, "t", "m")
        theirs = dispatcher.send(stranger, "bill", None, "t", "m")

        updated = dispatcher.mark_read(owner, [mine.id, theirs.id])

        assert updated == 1
        session.expire_all()
        assert session.get(Notification, mine.id).is_read is True
        assert session.get(Notification, theirs.id).is_read is False

    def test_repeated_ids_count_once(self, dispatcher):
        owner = uuid4()
        row = dispatcher.send(owner, "contract", None, "t", "m")
        assert dispatcher.mark_read(owner, [row.id, row.id]) == 1

    def test_unknown_ids_update_nothing(self, dispatcher):
        assert dispatcher.mark_read(uuid4(), [uuid4()]) == 0

    def test_empty_list_rejected(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.mark_read(uuid4(), [])
