"""Administration endpoints for users, entity grants and the entity catalog."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, require_admin
from kpiboard.core.errors import Conflict, InvalidOperation, InvalidPayload, NotFound
from kpiboard.core.rate_limit import enforce_rate_limit
from kpiboard.db.dependencies import get_db_session
from kpiboard.models.entities import Entity, User, UserEntityPermission, UserRole
from kpiboard.services.audit_service import AuditAction, AuditEntityType, record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

Name = Annotated[StrictStr, Field(min_length=1, max_length=255)]


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Annotated[StrictStr, Field(min_length=1, max_length=128)]
    display_name: Name | None = Field(default=None, alias="displayName")
    role: UserRole = UserRole.USER
    is_active: StrictBool = Field(default=True, alias="isActive")


class UserUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Name | None = Field(default=None, alias="displayName")
    role: UserRole | None = None
    is_active: StrictBool | None = Field(default=None, alias="isActive")


class PermissionGrant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity_id: StrictInt = Field(alias="entityId")
    can_view: StrictBool = Field(default=False, alias="canView")
    can_edit: StrictBool = Field(default=False, alias="canEdit")


class PermissionsReplace(BaseModel):
    permissions: list[PermissionGrant]


class EntityCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Annotated[StrictStr, Field(min_length=1, max_length=64)]
    display_name: Name = Field(alias="displayName")
    sort_order: StrictInt = Field(default=0, alias="sortOrder")
    is_aggregate: StrictBool = Field(default=False, alias="isAggregate")


def _serialize_user(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "username": user.username,
        "displayName": user.display_name,
        "role": user.role.value,
        "isActive": user.is_active,
        "lastSeenAt": user.last_seen_at.isoformat() if user.last_seen_at else None,
        "createdAt": user.created_at.isoformat(),
    }


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    return user


def _permission_rows(db: Session, user_id: int) -> list[dict[str, object]]:
    """Every leaf entity with the user's grant, unset grants as false."""

    rows = db.execute(
        select(Entity, UserEntityPermission)
        .outerjoin(
            UserEntityPermission,
            (UserEntityPermission.entity_id == Entity.id) & (UserEntityPermission.user_id == user_id),
        )
        .where(Entity.is_aggregate.is_(False))
        .order_by(Entity.sort_order.asc(), Entity.display_name.asc())
    ).all()
    return [
        {
            "entityId": entity.id,
            "entityCode": entity.code,
            "entityName": entity.display_name,
            "canView": bool(permission and permission.can_view),
            "canEdit": bool(permission and permission.can_edit),
        }
        for entity, permission in rows
    ]


@router.get("/users")
def list_users(
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    users = db.scalars(select(User).order_by(User.username.asc())).all()
    return {"items": [_serialize_user(user) for user in users]}


@router.post("/users", status_code=status.HTTP_201_CREATED, dependencies=[Depends(enforce_rate_limit)])
def create_user(
    payload: UserCreate,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Pre-provision a user before their first request through the proxy."""

    username = payload.username.strip().lower()
    if not username:
        raise InvalidPayload("invalid payload")

    user = User(
        username=username,
        display_name=(payload.display_name or username).strip(),
        role=payload.role,
        is_active=payload.is_active,
        created_at=datetime.utcnow(),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("username already exists") from exc

    record_audit(
        db,
        context=context,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        entity_name=user.username,
        new_value=user.role.value,
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s created by %s with role %s", user.username, context.username, user.role.value)
    return _serialize_user(user)


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _serialize_user(_get_user_or_404(db, user_id))


@router.patch("/users/{user_id}", dependencies=[Depends(enforce_rate_limit)])
def update_user(
    user_id: int,
    payload: UserUpdate,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Change display name, role or active flag."""

    user = _get_user_or_404(db, user_id)
    if user.id == context.user_id and (
        payload.role is UserRole.USER or payload.is_active is False
    ):
        raise InvalidOperation("cannot remove own administrator access")

    previous = f"{user.role.value},active={user.is_active}"
    if payload.display_name is not None:
        user.display_name = payload.display_name.strip()
    if payload.role is not None:
        user.role = payload.role
    if payload.is_active is not None:
        user.is_active = payload.is_active

    record_audit(
        db,
        context=context,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        entity_name=user.username,
        old_value=previous,
        new_value=f"{user.role.value},active={user.is_active}",
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s updated by %s", user.username, context.username)
    return _serialize_user(user)


@router.get("/users/{user_id}/permissions")
def get_user_permissions(
    user_id: int,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    _get_user_or_404(db, user_id)
    return {"items": _permission_rows(db, user_id)}


@router.put("/users/{user_id}/permissions", dependencies=[Depends(enforce_rate_limit)])
def replace_user_permissions(
    user_id: int,
    payload: PermissionsReplace,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Replace all grants of a user. Edit implies view; empty grants are dropped."""

    user = _get_user_or_404(db, user_id)

    entity_ids = [grant.entity_id for grant in payload.permissions]
    if len(entity_ids) != len(set(entity_ids)):
        raise InvalidPayload("invalid payload")

    entities = {
        entity.id: entity
        for entity in db.scalars(select(Entity).where(Entity.id.in_(entity_ids))).all()
    }
    for grant in payload.permissions:
        entity = entities.get(grant.entity_id)
        if entity is None:
            raise NotFound("unknown entity")
        if entity.is_aggregate:
            raise InvalidOperation("cannot grant permissions on aggregate entity")

    db.execute(delete(UserEntityPermission).where(UserEntityPermission.user_id == user.id))
    granted: list[str] = []
    for grant in payload.permissions:
        can_view = grant.can_view or grant.can_edit
        if not can_view:
            continue
        db.add(
            UserEntityPermission(
                user_id=user.id,
                entity_id=grant.entity_id,
                can_view=can_view,
                can_edit=grant.can_edit,
            )
        )
        granted.append(f"{entities[grant.entity_id].code}:{'edit' if grant.can_edit else 'view'}")

    record_audit(
        db,
        context=context,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PERMISSIONS,
        entity_id=user.id,
        entity_name=user.username,
        new_value=",".join(granted),
    )
    db.commit()
    logger.info("Permissions of %s replaced by %s: %s", user.username, context.username, granted)
    return {"success": True, "items": _permission_rows(db, user.id)}


@router.post("/entities", status_code=status.HTTP_201_CREATED, dependencies=[Depends(enforce_rate_limit)])
def create_entity(
    payload: EntityCreate,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    entity = Entity(
        code=payload.code.strip(),
        display_name=payload.display_name.strip(),
        sort_order=payload.sort_order,
        is_aggregate=payload.is_aggregate,
    )
    db.add(entity)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("entity code already exists") from exc

    record_audit(
        db,
        context=context,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.ENTITY,
        entity_id=entity.id,
        entity_name=entity.display_name,
    )
    db.commit()
    db.refresh(entity)
    logger.info("Entity %s created by %s", entity.code, context.username)
    return {
        "id": entity.id,
        "code": entity.code,
        "displayName": entity.display_name,
        "sortOrder": entity.sort_order,
        "isAggregate": entity.is_aggregate,
    }
