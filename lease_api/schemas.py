"""Request and response bodies (pydantic v2)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lease_kernel.domain.billing import BillStatus, SlipStatus


class _View(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class BillCreateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contract_id: UUID
    billing_month: str
    due_date: date
    rent_amount: Decimal | None = None
    water_previous_reading: Decimal | None = None
    water_current_reading: Decimal | None = None
    water_unit_rate: Decimal | None = None
    power_previous_reading: Decimal | None = None
    power_current_reading: Decimal | None = None
    power_unit_rate: Decimal | None = None
    internet_amount: Decimal | None = None
    other_charges: Decimal | None = None


class BillUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    billing_month: str | None = None
    due_date: date | None = None
    status: BillStatus | None = None
    rent_amount: Decimal | None = None
    water_previous_reading: Decimal | None = None
    water_current_reading: Decimal | None = None
    water_unit_rate: Decimal | None = None
    power_previous_reading: Decimal | None = None
    power_current_reading: Decimal | None = None
    power_unit_rate: Decimal | None = None
    internet_amount: Decimal | None = None
    other_charges: Decimal | None = None


class DecisionIn(BaseModel):
    decision: Literal["approve", "reject"]
    reason: str | None = None


class RejectIn(BaseModel):
    reason: str | None = None


class MarkReadIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_ids: list[UUID] = Field(alias="notificationIds")


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class BillOut(_View):
    id: UUID
    contract_id: UUID
    billing_month: date
    rent_amount: Decimal
    water_previous_reading: Decimal
    water_current_reading: Decimal
    water_unit_rate: Decimal
    water_amount: Decimal
    power_previous_reading: Decimal
    power_current_reading: Decimal
    power_unit_rate: Decimal
    power_amount: Decimal
    internet_amount: Decimal
    other_charges: Decimal
    total_amount: Decimal
    status: BillStatus
    due_date: date
    paid_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SlipOut(_View):
    id: UUID
    bill_id: UUID
    file_url: str
    file_name: str
    status: SlipStatus
    notes: str | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None


class ReviewQueueOut(_View):
    slip: SlipOut
    bill_status: BillStatus
    billing_month: date
    total_amount: Decimal
    tenant_id: UUID | None = None
    space_id: UUID | None = None


class NotificationOut(_View):
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    related_id: UUID | None = None
    is_read: bool
    created_at: datetime | None = None


class SummaryOut(_View):
    month: date
    total_bills: int
    paid: int
    unpaid: int
    pending_approval: int
    billed_amount: Decimal
    paid_revenue: Decimal
    outstanding_amount: Decimal
    by_status: dict[str, int]


class BillEnvelope(BaseModel):
    ok: bool = True
    bill: BillOut


class BillListEnvelope(BaseModel):
    ok: bool = True
    bills: list[BillOut]


class OkEnvelope(BaseModel):
    ok: bool = True


class DecisionEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    new_status: BillStatus = Field(serialization_alias="newStatus")


class SlipListEnvelope(BaseModel):
    ok: bool = True
    slips: list[ReviewQueueOut]


class SummaryEnvelope(BaseModel):
    ok: bool = True
    summary: SummaryOut


class NotificationListEnvelope(BaseModel):
    ok: bool = True
    notifications: list[NotificationOut]


class MarkReadEnvelope(BaseModel):
    ok: bool = True
    updated: int


class JobRunOut(BaseModel):
    success: bool
    message: str
    run_id: UUID | None = None
    contracts_transitioned: int = 0
    expiring_notices: int = 0
    overdue_notices: int = 0
    failed_rows: int = 0
