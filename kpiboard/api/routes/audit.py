"""Audit log endpoint for administrators."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, require_admin
from kpiboard.db.dependencies import get_db_session
from kpiboard.models.entities import AuditLogEntry
from kpiboard.repositories.activity_repository import ActivityRepository

router = APIRouter(prefix="/audit", tags=["audit"])


def _serialize_entry(entry: AuditLogEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "userId": entry.user_id,
        "username": entry.username,
        "action": entry.action,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "entityName": entry.entity_name,
        "oldValue": entry.old_value,
        "newValue": entry.new_value,
        "details": entry.details,
        "createdAt": entry.created_at.isoformat(),
    }


@router.get("")
def list_audit_entries(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    action: str | None = None,
    entity_type: str | None = Query(default=None, alias="entityType"),
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Newest entries first."""

    entries = ActivityRepository(db).list_audit_entries(
        limit=limit,
        offset=offset,
        action=action,
        entity_type=entity_type,
    )
    return {"logs": [_serialize_entry(entry) for entry in entries], "limit": limit, "offset": offset}
