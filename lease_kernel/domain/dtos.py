"""
Data Transfer Objects for the lease kernel.

Frozen dataclasses returned by services and selectors.  ORM rows are mapped
into these at the persistence boundary (``Model.to_dto()``), including the
slip -> bill -> contract join used by payment review, so callers always see
one explicit shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from lease_kernel.domain.billing import BillDecision, BillStatus, SlipStatus
from lease_kernel.domain.contract_status import ContractStatus


@dataclass(frozen=True)
class ContractView:
    id: UUID
    tenant_id: UUID
    space_id: UUID | None
    rent_amount: Decimal
    deposit_amount: Decimal
    start_date: date
    end_date: date
    status: ContractStatus
    terms: str | None = None


@dataclass(frozen=True)
class BillView:
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


@dataclass(frozen=True)
class SlipView:
    id: UUID
    bill_id: UUID
    file_url: str
    file_name: str
    status: SlipStatus
    notes: str | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None


@dataclass(frozen=True)
class NotificationView:
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    related_id: UUID | None
    is_read: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class SlipReviewContext:
    """One slip resolved through its bill and contract to the tenant."""

    slip: SlipView
    bill_id: UUID
    bill_status: BillStatus
    contract_id: UUID | None
    tenant_id: UUID | None


@dataclass(frozen=True)
class ReviewQueueRow:
    """Admin review-queue line: slip plus the bill facts shown beside it."""

    slip: SlipView
    bill_status: BillStatus
    billing_month: date
    total_amount: Decimal
    tenant_id: UUID | None
    space_id: UUID | None


@dataclass(frozen=True)
class DecisionOutcome:
    bill_id: UUID
    decision: BillDecision
    previous_status: BillStatus
    new_status: BillStatus
    paid_date: datetime | None
    slip_id: UUID | None
    notification_id: UUID | None
    correction: bool = False


@dataclass(frozen=True)
class SubmissionResult:
    slip: SlipView
    bill: BillView


@dataclass(frozen=True)
class SlipEvidence:
    """A slip together with its stored file, for admin review."""

    slip: SlipView
    content: bytes


@dataclass(frozen=True)
class StatusTransition:
    contract_id: UUID
    from_status: ContractStatus
    to_status: ContractStatus


@dataclass(frozen=True)
class RowFailure:
    """A row the batch skipped after an error, with the error code."""

    row_id: UUID
    error_code: str
    error_message: str


@dataclass(frozen=True)
class StatusRunResult:
    today: date
    transitions: tuple[StatusTransition, ...] = ()
    failures: tuple[RowFailure, ...] = ()
    examined: int = 0


@dataclass(frozen=True)
class MonthlyBillingSummary:
    month: date
    total_bills: int
    paid: int
    unpaid: int
    pending_approval: int
    billed_amount: Decimal
    paid_revenue: Decimal
    outstanding_amount: Decimal
    by_status: dict[str, int] = field(default_factory=dict)
