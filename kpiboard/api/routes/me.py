"""Current user endpoint."""

from fastapi import APIRouter, Depends

from kpiboard.core.auth import EntityPermission, RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


def _serialize_permission(permission: EntityPermission) -> dict[str, object]:
    return {
        "entityId": permission.entity_id,
        "entityCode": permission.entity_code,
        "entityName": permission.entity_name,
        "canView": permission.can_view,
        "canEdit": permission.can_edit,
    }


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and entity grants."""

    return {
        "id": context.user_id,
        "username": context.username,
        "displayName": context.display_name,
        "role": context.role.value,
        "isAdmin": context.is_admin,
        "permissions": [_serialize_permission(permission) for permission in context.permissions],
    }
