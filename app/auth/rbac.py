from typing import Dict

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import Role

READ = {"read": True}
FULL = {"create": True, "read": True, "update": True, "delete": True}
MANAGE = {"create": True, "read": True, "update": True}

# Module -> action grants per role. Only admins delete records.
ROLE_PERMISSIONS: Dict[Role, Dict[str, Dict[str, bool]]] = {
    Role.ADMIN: {
        "grades": FULL,
        "classrooms": FULL,
        "students": FULL,
        "promotions": FULL,
        "attendance": FULL,
        "fees": FULL,
        "schedules": FULL,
    },
    Role.HEAD_TEACHER: {
        "grades": {"read": True, "update": True},
        "classrooms": MANAGE,
        "students": MANAGE,
        "attendance": MANAGE,
        "fees": MANAGE,
        "schedules": MANAGE,
    },
    Role.TEACHER: {
        "grades": READ,
        "classrooms": READ,
        "students": READ,
        "attendance": {"create": True, "read": True},
        "fees": READ,
        "schedules": READ,
    },
    Role.SUPPORT_STAFF: {
        "grades": READ,
        "classrooms": READ,
        "students": READ,
        "attendance": READ,
        "fees": READ,
        "schedules": READ,
    },
}


def permissions_for_role(role: Role) -> Dict[str, Dict[str, bool]]:
    return ROLE_PERMISSIONS.get(role, {})


def check_permission(module: str, action: str):
    """
    Dependency factory to enforce a specific permission.

    Example:
        Depends(check_permission("fees", "update"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if current_user.role == Role.ADMIN:
            return
        permissions: Dict[str, Dict[str, bool]] = current_user.permissions or {}
        module_perms = permissions.get(module, {})
        if not module_perms.get(action, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role.value}' is not authorized to {action} {module}",
            )

    return _checker
