"""
Tenant notice texts.

Titles and messages are Thai, matching the portal's tenant UI.  Dates use
the Thai Buddhist-era calendar (d/m/yyyy+543) and amounts are shown in baht.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class NoticeType(str, Enum):
    CONTRACT = "contract"
    BILL = "bill"


@dataclass(frozen=True)
class Notice:
    type: NoticeType
    title: str
    message: str


def format_thai_date(value: date) -> str:
    return f"{value.day}/{value.month}/{value.year + 543}"


def format_baht(amount: Decimal) -> str:
    return f"฿{amount:,.2f}"


def slip_approved() -> Notice:
    return Notice(
        type=NoticeType.BILL,
        title="ยืนยันการชำระเงินแล้ว",
        message="สลิปของคุณได้รับการอนุมัติ และบิลถูกยืนยันการชำระแล้ว",
    )


def slip_rejected(reason: str | None) -> Notice:
    message = (
        f"เหตุผล: {reason}" if reason else "สลิปของคุณถูกปฏิเสธ กรุณาอัปโหลดใหม่"
    )
    return Notice(type=NoticeType.BILL, title="สลิปการชำระถูกปฏิเสธ", message=message)


def contract_expiring(end_date: date, space_name: str | None = None) -> Notice:
    subject = f"สัญญาเช่า {space_name}" if space_name else "สัญญาเช่าของคุณ"
    return Notice(
        type=NoticeType.CONTRACT,
        title="สัญญาเช่าใกล้หมดอายุ",
        message=f"{subject} จะหมดอายุในวันที่ {format_thai_date(end_date)}",
    )


def bill_overdue(total_amount: Decimal, space_name: str | None = None) -> Notice:
    subject = f"บิลค่าเช่า {space_name}" if space_name else "บิลค่าเช่า"
    return Notice(
        type=NoticeType.BILL,
        title="บิลค่าเช่าเกินกำหนดชำระ",
        message=f"{subject} จำนวน {format_baht(total_amount)} เกินกำหนดชำระแล้ว",
    )
