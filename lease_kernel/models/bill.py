"""
Module: lease_kernel.models.bill
Responsibility: ORM persistence for bills (one billing period of charges for
    a contract).
Architecture position: Kernel > Models.

Invariants enforced:
    - status is one of unpaid/pending_approval/paid (check constraint).
    - paid_date is non-null only while status is paid (check constraint).
    - water_amount, power_amount and total_amount are derived values; the
      BillLedger recomputes them in the same flush as any input change.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lease_kernel.db.base import Base, UUIDString
from lease_kernel.domain.billing import (
    RATE_COLUMN,
    READING_COLUMN,
    BillStatus,
    ChargeBreakdown,
    UtilityReading,
)
from lease_kernel.domain.dtos import BillView

if TYPE_CHECKING:
    from lease_kernel.models.contract import Contract

_ZERO = Decimal("0")


class Bill(Base):
    """One billing period's aggregated charges for a contract."""

    __tablename__ = "bills"

    __table_args__ = (
        CheckConstraint(
            "status IN ('unpaid', 'pending_approval', 'paid')",
            name="ck_bills_valid_status",
        ),
        CheckConstraint(
            "paid_date IS NULL OR status = 'paid'",
            name="ck_bills_paid_date_only_when_paid",
        ),
        Index("ix_bills_status_due_date", "status", "due_date"),
        Index("ix_bills_contract_month", "contract_id", "billing_month"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contracts.id"), nullable=False,
    )
    billing_month: Mapped[date] = mapped_column(Date, nullable=False)
    rent_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    water_previous_reading: Mapped[Decimal] = mapped_column(
        Numeric(*READING_COLUMN), nullable=False, default=_ZERO,
    )
    water_current_reading: Mapped[Decimal] = mapped_column(
        Numeric(*READING_COLUMN), nullable=False, default=_ZERO,
    )
    water_unit_rate: Mapped[Decimal] = mapped_column(
        Numeric(*RATE_COLUMN), nullable=False, default=_ZERO,
    )
    water_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    power_previous_reading: Mapped[Decimal] = mapped_column(
        Numeric(*READING_COLUMN), nullable=False, default=_ZERO,
    )
    power_current_reading: Mapped[Decimal] = mapped_column(
        Numeric(*READING_COLUMN), nullable=False, default=_ZERO,
    )
    power_unit_rate: Mapped[Decimal] = mapped_column(
        Numeric(*RATE_COLUMN), nullable=False, default=_ZERO,
    )
    power_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    internet_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    other_charges: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=BillStatus.UNPAID.value,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )

    contract: Mapped["Contract"] = relationship("Contract")

    def __repr__(self) -> str:
        return (
            f"<Bill {self.id} contract={self.contract_id} "
            f"month={self.billing_month} status={self.status}>"
        )

    @property
    def water(self) -> UtilityReading:
        return UtilityReading(
            previous=self.water_previous_reading,
            current=self.water_current_reading,
            rate=self.water_unit_rate,
        )

    @property
    def power(self) -> UtilityReading:
        return UtilityReading(
            previous=self.power_previous_reading,
            current=self.power_current_reading,
            rate=self.power_unit_rate,
        )

    @property
    def charges(self) -> ChargeBreakdown:
        return ChargeBreakdown(
            rent=self.rent_amount,
            water=self.water_amount,
            power=self.power_amount,
            internet=self.internet_amount,
            other=self.other_charges,
        )

    def recompute(self) -> None:
        """Re-derive utility amounts and total from the stored inputs."""
        self.water_amount = self.water.amount
        self.power_amount = self.power.amount
        self.total_amount = self.charges.total

    def to_dto(self) -> BillView:
        return BillView(
            id=self.id,
            contract_id=self.contract_id,
            billing_month=self.billing_month,
            rent_amount=self.rent_amount,
            water_previous_reading=self.water_previous_reading,
            water_current_reading=self.water_current_reading,
            water_unit_rate=self.water_unit_rate,
            water_amount=self.water_amount,
            power_previous_reading=self.power_previous_reading,
            power_current_reading=self.power_current_reading,
            power_unit_rate=self.power_unit_rate,
            power_amount=self.power_amount,
            internet_amount=self.internet_amount,
            other_charges=self.other_charges,
            total_amount=self.total_amount,
            status=BillStatus(self.status),
            due_date=self.due_date,
            paid_date=self.paid_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
