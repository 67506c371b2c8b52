"""Audit trail recording."""

from __future__ import annotations

import enum
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext
from kpiboard.models.entities import AuditLogEntry
from kpiboard.repositories.activity_repository import ActivityRepository

logger = logging.getLogger(__name__)


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


class AuditEntityType(str, enum.Enum):
    VALUE = "value"
    COMMENT = "comment"
    SETTINGS = "settings"
    USER = "user"
    PERMISSIONS = "permissions"
    ENTITY = "entity"


def record_audit(
    db: Session,
    *,
    context: RequestUserContext | None,
    action: AuditAction,
    entity_type: AuditEntityType,
    entity_id: int | None = None,
    entity_name: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
    details: str | None = None,
) -> AuditLogEntry:
    """Stage an audit entry in the caller's transaction.

    The entry is committed or rolled back together with the change it
    describes.
    """

    entry = AuditLogEntry(
        user_id=context.user_id if context else None,
        username=context.username if context else "system",
        action=action.value,
        entity_type=entity_type.value,
        entity_id=entity_id,
        entity_name=entity_name,
        old_value=old_value,
        new_value=new_value,
        details=details,
        created_at=datetime.utcnow(),
    )
    ActivityRepository(db).add_audit_entry(entry)
    logger.debug("Audit %s/%s by %s: %s", entry.action, entry.entity_type, entry.username, details)
    return entry
