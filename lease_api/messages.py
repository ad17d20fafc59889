"""Tenant-facing error texts (Thai, generic)."""

from __future__ import annotations

from lease_kernel.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    LeaseKernelError,
    NotFoundError,
    SlipStorageError,
    UnauthenticatedError,
    ValidationError,
)

GENERIC_ERROR = "เกิดข้อผิดพลาด กรุณาลองใหม่อีกครั้ง"

# Most specific first.
_TENANT_MESSAGES: tuple[tuple[type[LeaseKernelError], str], ...] = (
    (ValidationError, "ข้อมูลไม่ถูกต้อง กรุณาตรวจสอบอีกครั้ง"),
    (UnauthenticatedError, "กรุณาเข้าสู่ระบบ"),
    (ForbiddenError, "คุณไม่มีสิทธิ์ดำเนินการนี้"),
    (AuthError, "คุณไม่มีสิทธิ์ดำเนินการนี้"),
    (NotFoundError, "ไม่พบข้อมูลที่ต้องการ"),
    (ConflictError, "ไม่สามารถดำเนินการได้ในขณะนี้"),
    (SlipStorageError, "อัปโหลดสลิปไม่สำเร็จ กรุณาลองใหม่อีกครั้ง"),
)


def tenant_message(exc: Exception) -> str:
    for exc_type, message in _TENANT_MESSAGES:
        if isinstance(exc, exc_type):
            return message
    return GENERIC_ERROR
