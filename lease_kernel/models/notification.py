"""
Module: lease_kernel.models.notification
Responsibility: ORM persistence for in-app tenant notifications.
Architecture position: Kernel > Models.

The (user_id, type, related_id, created_at) index serves the dedup lookup
used by the daily job.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import Base, UUIDString
from lease_kernel.domain.dtos import NotificationView


class Notification(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            "type IN ('contract', 'bill')",
            name="ck_notifications_valid_type",
        ),
        Index(
            "ix_notifications_dedup",
            "user_id", "type", "related_id", "created_at",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    related_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification {self.id} user={self.user_id} type={self.type}>"

    def to_dto(self) -> NotificationView:
        return NotificationView(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            type=self.type,
            related_id=self.related_id,
            is_read=self.is_read,
            created_at=self.created_at,
        )
