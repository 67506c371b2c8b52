"""Authentication context extraction and entity permission guards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from kpiboard.core.config import get_settings
from kpiboard.core.errors import Forbidden, Unauthenticated
from kpiboard.db.dependencies import get_db_session
from kpiboard.models.entities import Entity, User, UserEntityPermission, UserRole


@dataclass(frozen=True)
class EntityPermission:
    """Explicit per-entity grant resolved for request context."""

    entity_id: int
    entity_code: str
    entity_name: str
    can_view: bool
    can_edit: bool


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: int
    username: str
    display_name: str
    role: UserRole
    is_active: bool
    permissions: tuple[EntityPermission, ...]

    @property
    def is_admin(self) -> bool:
        """Admins bypass entity-level permissions."""

        return self.role is UserRole.ADMIN

    def permission_for(self, entity_code: str) -> EntityPermission | None:
        for permission in self.permissions:
            if permission.entity_code == entity_code:
                return permission
        return None


def _require_identity_headers(username: str | None, display_name: str | None) -> tuple[str, str]:
    if not username or not username.strip():
        raise Unauthenticated(
            "Missing identity headers. Expected X-User-Name or enable development principal fallback."
        )
    username = username.strip().lower()
    return username, (display_name or username).strip()


def _resolve_identity(username: str | None, display_name: str | None) -> tuple[str, str, UserRole]:
    settings = get_settings()
    if username:
        resolved_username, resolved_display_name = _require_identity_headers(username, display_name)
        return resolved_username, resolved_display_name, UserRole.USER

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_username.strip().lower(),
            settings.auth_dev_display_name.strip(),
            UserRole.ADMIN,
        )

    resolved_username, resolved_display_name = _require_identity_headers(username, display_name)
    return resolved_username, resolved_display_name, UserRole.USER


def _upsert_user(db: Session, *, username: str, display_name: str, role: UserRole) -> User:
    user = db.scalar(select(User).where(User.username == username))
    now = datetime.utcnow()

    if user is None:
        user = User(
            username=username,
            display_name=display_name,
            role=role,
            is_active=True,
            last_seen_at=now,
            created_at=now,
        )
        db.add(user)
        db.flush()
        return user

    if user.display_name != display_name:
        user.display_name = display_name
    user.last_seen_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    username: str,
    display_name: str | None = None,
    role: UserRole = UserRole.USER,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers. The role is only applied
    when the user is created.
    """

    normalized_username = username.strip().lower()
    normalized_display_name = (display_name or "").strip() or normalized_username

    user = _upsert_user(
        db,
        username=normalized_username,
        display_name=normalized_display_name,
        role=role,
    )
    db.commit()
    db.refresh(user)
    return user


def _load_permissions(db: Session, *, user_id: int) -> tuple[EntityPermission, ...]:
    rows = db.execute(
        select(UserEntityPermission, Entity)
        .join(Entity, Entity.id == UserEntityPermission.entity_id)
        .where(UserEntityPermission.user_id == user_id)
        .order_by(Entity.sort_order.asc(), Entity.code.asc())
    ).all()

    return tuple(
        EntityPermission(
            entity_id=entity.id,
            entity_code=entity.code,
            entity_name=entity.display_name,
            can_view=permission.can_view,
            can_edit=permission.can_edit,
        )
        for permission, entity in rows
    )


def get_current_user_context(
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
    x_user_display_name: str | None = Header(default=None, alias="X-User-Display-Name"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and entity permissions.

    Identity comes from headers set by a trusted reverse proxy.
    """

    username, display_name, role = _resolve_identity(x_user_name, x_user_display_name)
    user = _upsert_user(db, username=username, display_name=display_name, role=role)
    if not user.is_active:
        db.commit()
        raise Forbidden("User account is disabled.")

    permissions = _load_permissions(db, user_id=user.id)
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        username=user.username,
        display_name=user.display_name,
        role=user.role,
        is_active=user.is_active,
        permissions=permissions,
    )


def can_view_entity(context: RequestUserContext, entity_code: str) -> bool:
    if context.is_admin:
        return True
    permission = context.permission_for(entity_code)
    return permission is not None and permission.can_view


def can_edit_entity(context: RequestUserContext, entity_code: str) -> bool:
    if context.is_admin:
        return True
    permission = context.permission_for(entity_code)
    return permission is not None and permission.can_edit


def require_admin(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
    """Dependency rejecting non-admin callers."""

    if not context.is_admin:
        raise Forbidden("Administrator role required for this operation.")
    return context
