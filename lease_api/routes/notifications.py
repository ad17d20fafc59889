"""Notification inbox routes for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from lease_api.auth import current_user
from lease_api.routes import _services
from lease_api.schemas import (
    MarkReadEnvelope,
    MarkReadIn,
    NotificationListEnvelope,
    NotificationOut,
)
from lease_kernel.db.engine import session_scope
from lease_kernel.domain.auth import AuthContext
from lease_kernel.exceptions import ForbiddenError

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _user_id(auth: AuthContext):
    if auth.subject_id is None:
        raise ForbiddenError("A user credential is required")
    return auth.subject_id


@router.get("", response_model=NotificationListEnvelope)
def list_notifications(unread: bool = False, auth: AuthContext = Depends(current_user)):
    with session_scope() as session:
        rows = _services.selector(session).notifications_for_user(
            _user_id(auth), unread_only=unread,
        )
    return NotificationListEnvelope(
        notifications=[NotificationOut.model_validate(row) for row in rows],
    )


@router.post("/read", response_model=MarkReadEnvelope)
def mark_read(body: MarkReadIn, request: Request, auth: AuthContext = Depends(current_user)):
    with session_scope() as session:
        updated = _services.dispatcher(request, session).mark_read(
            _user_id(auth), body.notification_ids,
        )
    return MarkReadEnvelope(updated=updated)
