"""
Module: lease_kernel.models.payment_slip
Responsibility: ORM persistence for tenant-submitted payment evidence.
Architecture position: Kernel > Models.

Invariants enforced:
    - status is one of pending/approved/rejected (check constraint).
    - reviewed_at is set when an admin decides the slip.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lease_kernel.db.base import Base, UUIDString
from lease_kernel.domain.billing import SlipStatus
from lease_kernel.domain.dtos import SlipView

if TYPE_CHECKING:
    from lease_kernel.models.bill import Bill


class PaymentSlip(Base):
    __tablename__ = "payment_slips"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_payment_slips_valid_status",
        ),
        Index("ix_payment_slips_bill_created", "bill_id", "created_at"),
        Index("ix_payment_slips_status", "status"),
    )

    bill_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bills.id"), nullable=False,
    )
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=SlipStatus.PENDING.value,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    bill: Mapped["Bill"] = relationship("Bill")

    def __repr__(self) -> str:
        return f"<PaymentSlip {self.id} bill={self.bill_id} status={self.status}>"

    def to_dto(self) -> SlipView:
        return SlipView(
            id=self.id,
            bill_id=self.bill_id,
            file_url=self.file_url,
            file_name=self.file_name,
            status=SlipStatus(self.status),
            notes=self.notes,
            rejection_reason=self.rejection_reason,
            created_at=self.created_at,
            reviewed_at=self.reviewed_at,
        )
