"""
lease_kernel.services.notification_dispatcher -- Tenant notifications.

Responsibility:
    Inserts in-app notifications for tenants, optionally suppressing a
    repeat of the same (user, type, related entity) notice inside a
    lookback window, and marks a user's own notifications as read.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - ``notify`` inserts at most one row per (user_id, type, related_id)
      within the dedup window, provided calls do not race.
    - ``send`` always inserts; used for per-decision notices.
    - ``mark_read`` only touches rows whose user_id is the caller's.

Failure modes:
    - ValidationError on an unknown notification type or an empty id list.

Known race:
    The dedup lookup and the insert are two statements.  Two concurrent
    ``notify`` calls for the same key can both insert.  The daily job runs
    under a run lock, which keeps it from racing itself.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lease_kernel.domain.clock import Clock
from lease_kernel.domain.dtos import NotificationView
from lease_kernel.domain.notices import Notice, NoticeType
from lease_kernel.exceptions import ValidationError
from lease_kernel.logging_config import get_logger
from lease_kernel.models.notification import Notification
from lease_kernel.services.base import BaseService

logger = get_logger("services.notification_dispatcher")

DEFAULT_DEDUP_WINDOW_HOURS = 24


def _coerce_type(value: NoticeType | str) -> NoticeType:
    try:
        return NoticeType(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown notification type: {value!r}", field="type") from exc


class NotificationDispatcher(BaseService):
    """Creates and updates tenant notifications."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        dedup_window_hours: int = DEFAULT_DEDUP_WINDOW_HOURS,
    ) -> None:
        super().__init__(session, clock)
        self.dedup_window = timedelta(hours=dedup_window_hours)

    def notify(
        self,
        user_id: UUID,
        type: NoticeType | str,
        related_id: UUID | None,
        title: str,
        message: str,
    ) -> NotificationView | None:
        """
        Insert a notification unless an identical-key one exists in the window.

        Returns:
            The new notification, or None when a recent duplicate was found.
        """
        notice_type = _coerce_type(type)
        since = self.clock.now() - self.dedup_window

        related_clause = (
            Notification.related_id.is_(None)
            if related_id is None
            else Notification.related_id == related_id
        )
        existing_id = self.session.execute(
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.type == notice_type.value,
                related_clause,
                Notification.created_at >= since,
            )
            .limit(1)
        ).scalar_one_or_none()

        if existing_id is not None:
            logger.info(
                "notification_skipped_duplicate",
                extra={
                    "user_id": str(user_id),
                    "notification_type": notice_type.value,
                    "related_id": str(related_id) if related_id else None,
                    "existing_id": str(existing_id),
                },
            )
            return None

        return self._insert(user_id, notice_type, related_id, title, message)

    def send(
        self,
        user_id: UUID,
        type: NoticeType | str,
        related_id: UUID | None,
        title: str,
        message: str,
    ) -> NotificationView:
        """Insert a notification unconditionally."""
        return self._insert(user_id, _coerce_type(type), related_id, title, message)

    def notify_notice(
        self, user_id: UUID, notice: Notice, related_id: UUID | None,
    ) -> NotificationView | None:
        return self.notify(user_id, notice.type, related_id, notice.title, notice.message)

    def send_notice(
        self, user_id: UUID, notice: Notice, related_id: UUID | None,
    ) -> NotificationView:
        return self.send(user_id, notice.type, related_id, notice.title, notice.message)

    def mark_read(self, user_id: UUID, notification_ids: Iterable[UUID]) -> int:
        """
        Mark the given notifications read, restricted to ``user_id``'s own rows.

        Returns:
            Number of rows matched for this user.
        """
        ids = list(dict.fromkeys(notification_ids))
        if not ids:
            raise ValidationError("notification_ids must not be empty", field="notification_ids")

        result = self.session.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.id.in_(ids),
            )
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        updated = result.rowcount or 0
        logger.info(
            "notifications_marked_read",
            extra={
                "user_id": str(user_id),
                "requested": len(ids),
                "updated": updated,
            },
        )
        return updated

    def _insert(
        self,
        user_id: UUID,
        notice_type: NoticeType,
        related_id: UUID | None,
        title: str,
        message: str,
    ) -> NotificationView:
        row = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=notice_type.value,
            related_id=related_id,
            is_read=False,
            created_at=self.clock.now(),
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "notification_created",
            extra={
                "notification_id": str(row.id),
                "user_id": str(user_id),
                "notification_type": notice_type.value,
                "related_id": str(related_id) if related_id else None,
            },
        )
        return row.to_dto()
