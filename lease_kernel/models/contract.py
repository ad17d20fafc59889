"""
Module: lease_kernel.models.contract
Responsibility: ORM persistence for tenancy contracts.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value types only.

Invariants enforced:
    - status is one of active/expiring/expired/cancelled (check constraint).
    - cancelled is written only by manual admin edit; the status engine
      never selects cancelled rows.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import Base, UUIDString
from lease_kernel.domain.contract_status import ContractStatus
from lease_kernel.domain.dtos import ContractView


class Contract(Base):
    """A tenancy agreement binding a tenant to a space for a date range."""

    __tablename__ = "contracts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'expiring', 'expired', 'cancelled')",
            name="ck_contracts_valid_status",
        ),
        Index("ix_contracts_status_end_date", "status", "end_date"),
        Index("ix_contracts_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    space_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rent_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    deposit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ContractStatus.ACTIVE.value,
    )
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Contract {self.id} tenant={self.tenant_id} status={self.status}>"

    def to_dto(self) -> ContractView:
        return ContractView(
            id=self.id,
            tenant_id=self.tenant_id,
            space_id=self.space_id,
            rent_amount=self.rent_amount,
            deposit_amount=self.deposit_amount,
            start_date=self.start_date,
            end_date=self.end_date,
            status=ContractStatus(self.status),
            terms=self.terms,
        )
