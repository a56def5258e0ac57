"""Role-Based Access Control (RBAC) enforcement.

Dependency-injection helpers that gate FastAPI routes on the caller's
roles. The actual decisions are the pure predicates in ``core.roles``.

Usage:
    @router.post("/admin/workflows/{id}/approve")
    async def approve(current_user: CurrentUser = Depends(require_admin()), ...): ...

    @router.post("/workflows")
    async def create(current_user: CurrentUser = Depends(require_role(Role.DEVELOPER)), ...): ...
"""

import logging
from typing import Optional

from fastapi import Depends

from app.dependencies import get_current_active_user
from core.constants import Role
from core.exceptions import AuthorizationDenied
from core.roles import can_modify, has_all_roles, has_any_role, has_role
from core.security import CurrentUser

logger = logging.getLogger(__name__)


def _names(roles) -> str:
    return ", ".join(r.value if isinstance(r, Role) else r for r in roles)


def require_role(role: Role):
    """FastAPI dependency that enforces a single role."""

    async def _check(current_user: CurrentUser = Depends(get_current_active_user)) -> CurrentUser:
        if not has_role(current_user.roles, role):
            logger.warning(
                "RBAC denied: user=%s role=%s held=%s",
                current_user.email,
                role.value,
                current_user.roles,
            )
            raise AuthorizationDenied(f"Missing required role: {role.value}")
        return current_user

    return _check


def require_any_role(*roles: Role):
    """FastAPI dependency that enforces at least one of the given roles."""

    async def _check(current_user: CurrentUser = Depends(get_current_active_user)) -> CurrentUser:
        if not has_any_role(current_user.roles, roles):
            logger.warning("RBAC denied: user=%s needs any of %s", current_user.email, _names(roles))
            raise AuthorizationDenied(f"Missing one of required roles: {_names(roles)}")
        return current_user

    return _check


def require_all_roles(*roles: Role):
    """FastAPI dependency that enforces all of the given roles."""

    async def _check(current_user: CurrentUser = Depends(get_current_active_user)) -> CurrentUser:
        if not has_all_roles(current_user.roles, roles):
            missing = [r for r in roles if not has_role(current_user.roles, r)]
            logger.warning("RBAC denied: user=%s missing %s", current_user.email, _names(missing))
            raise AuthorizationDenied(f"Missing required roles: {_names(missing)}")
        return current_user

    return _check


def require_admin():
    """Shortcut: require the ADMIN role."""
    return require_role(Role.ADMIN)


def ensure_owner_or_admin(owner_id: Optional[str], user: CurrentUser, resource: str = "resource") -> None:
    """Raise AuthorizationDenied unless ``user`` owns the resource or is an admin."""
    if not can_modify(owner_id, user.id, user.roles):
        logger.warning("Ownership check denied: user=%s %s owner=%s", user.email, resource, owner_id)
        raise AuthorizationDenied(f"You do not have permission to modify this {resource}")
