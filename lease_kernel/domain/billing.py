"""
Billing domain types (``lease_kernel.domain.billing``).

Responsibility
--------------
Pure value objects and rules for the bill lifecycle: the utility charge
calculator, the bill total, bill/slip status enums and the decision state
machine.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/`` (other than
the rounding helper in ``db/types``), ``services/``, or outer layers.

Invariants enforced
-------------------
* Utility amount: ``max(0, current - previous) * rate`` rounded half-up to
  two places.  Negative deltas are clamped to zero, never rejected.
* Bill total: always the sum of rent, water, power, internet and other
  charges, recomputed from components on every write.
* Decisions are accepted from any bill status.  ``BILL_TRANSITIONS`` holds
  the normal flow only; a decision outside it is a *correction* and is
  logged as such, not refused.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from lease_kernel.db.types import round_money

ZERO = Decimal("0")


# =========================================================================
# Status lifecycles
# =========================================================================


class BillStatus(str, Enum):
    """Bill lifecycle states."""

    UNPAID = "unpaid"
    PENDING_APPROVAL = "pending_approval"
    PAID = "paid"


class SlipStatus(str, Enum):
    """Payment slip review states.  A slip is decided exactly once."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BillDecision(str, Enum):
    """Admin decision on submitted payment evidence."""

    APPROVE = "approve"
    REJECT = "reject"


# Normal flow: tenant submit, then admin approve or reject.
BILL_TRANSITIONS: dict[BillStatus, frozenset[BillStatus]] = {
    BillStatus.UNPAID: frozenset({BillStatus.PENDING_APPROVAL}),
    BillStatus.PENDING_APPROVAL: frozenset({BillStatus.PAID, BillStatus.UNPAID}),
    BillStatus.PAID: frozenset(),
}

DECISION_TARGET: dict[BillDecision, BillStatus] = {
    BillDecision.APPROVE: BillStatus.PAID,
    BillDecision.REJECT: BillStatus.UNPAID,
}

DECISION_SLIP_STATUS: dict[BillDecision, SlipStatus] = {
    BillDecision.APPROVE: SlipStatus.APPROVED,
    BillDecision.REJECT: SlipStatus.REJECTED,
}


def is_correction(previous: BillStatus, decision: BillDecision) -> bool:
    """
    True when a decision does not follow the normal flow.

    Re-approving a paid bill is a plain repeat, not a correction.
    Rejecting a paid bill (un-paying it) or approving an unpaid bill with
    no pending evidence are corrections.
    """
    target = DECISION_TARGET[decision]
    if previous is target:
        return False
    return target not in BILL_TRANSITIONS[previous]


# =========================================================================
# Utility Charge Calculator
# =========================================================================


def utility_amount(previous: Decimal, current: Decimal, rate: Decimal) -> Decimal:
    """
    Charge for one metered utility.

    units = max(0, current - previous); amount = round(units * rate, 2).
    Never raises for inputs that fit their bill columns (``FIELD_COLUMNS``).
    """
    units = max(ZERO, current - previous)
    return round_money(units * rate)


@dataclass(frozen=True)
class UtilityReading:
    """Meter readings and unit rate for one utility on one bill."""

    previous: Decimal = ZERO
    current: Decimal = ZERO
    rate: Decimal = ZERO

    @property
    def units(self) -> Decimal:
        return max(ZERO, self.current - self.previous)

    @property
    def is_reversed(self) -> bool:
        """Current reading below previous (clamped to zero units)."""
        return self.current < self.previous

    @property
    def amount(self) -> Decimal:
        return utility_amount(self.previous, self.current, self.rate)


@dataclass(frozen=True)
class ChargeBreakdown:
    """All charge components of a bill."""

    rent: Decimal = ZERO
    water: Decimal = ZERO
    power: Decimal = ZERO
    internet: Decimal = ZERO
    other: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return bill_total(self.rent, self.water, self.power, self.internet, self.other)


def bill_total(*components: Decimal) -> Decimal:
    """Sum of charge components, rounded to two places."""
    return round_money(sum(components, ZERO))


# =========================================================================
# Bill field groups
# =========================================================================

WATER_INPUT_FIELDS = (
    "water_previous_reading",
    "water_current_reading",
    "water_unit_rate",
)
POWER_INPUT_FIELDS = (
    "power_previous_reading",
    "power_current_reading",
    "power_unit_rate",
)
FIXED_CHARGE_FIELDS = ("rent_amount", "internet_amount", "other_charges")

NUMERIC_FIELDS = WATER_INPUT_FIELDS + POWER_INPUT_FIELDS + FIXED_CHARGE_FIELDS

# Fields an admin may patch on an existing bill.
EDITABLE_FIELDS = frozenset(
    NUMERIC_FIELDS + ("billing_month", "due_date", "status")
)

# Numeric (precision, scale) of each input column on ``bills``.  Inputs are
# quantized to these before any amount is derived from them.
READING_COLUMN = (14, 3)
RATE_COLUMN = (12, 4)
MONEY_COLUMN = (14, 2)

FIELD_COLUMNS: dict[str, tuple[int, int]] = {
    "water_previous_reading": READING_COLUMN,
    "water_current_reading": READING_COLUMN,
    "water_unit_rate": RATE_COLUMN,
    "power_previous_reading": READING_COLUMN,
    "power_current_reading": READING_COLUMN,
    "power_unit_rate": RATE_COLUMN,
    "rent_amount": MONEY_COLUMN,
    "internet_amount": MONEY_COLUMN,
    "other_charges": MONEY_COLUMN,
}
