"""Role predicates.

Pure functions over a caller's role collection. Callers pass the role
set in explicitly; nothing here reads request or session state. Duplicate
entries in ``roles`` are harmless.
"""

from typing import Iterable, Optional, Union

from core.constants import Role

RoleLike = Union[Role, str]


def _value(role: RoleLike) -> str:
    return role.value if isinstance(role, Role) else role


def _as_set(roles: Iterable[RoleLike]) -> set[str]:
    return {_value(r) for r in roles}


def has_role(roles: Iterable[RoleLike], required: RoleLike) -> bool:
    """True iff ``required`` is one of ``roles``."""
    return _value(required) in _as_set(roles)


def has_any_role(roles: Iterable[RoleLike], required: Iterable[RoleLike]) -> bool:
    """True iff at least one required role is held.

    An empty ``required`` collection never matches.
    """
    held = _as_set(roles)
    return any(_value(r) in held for r in required)


def has_all_roles(roles: Iterable[RoleLike], required: Iterable[RoleLike]) -> bool:
    """True iff every required role is held.

    An empty ``required`` collection is always satisfied, unlike
    :func:`has_any_role`.
    """
    held = _as_set(roles)
    return all(_value(r) in held for r in required)


def is_admin(roles: Iterable[RoleLike]) -> bool:
    return has_role(roles, Role.ADMIN)


def is_developer(roles: Iterable[RoleLike]) -> bool:
    return has_role(roles, Role.DEVELOPER)


def is_buyer(roles: Iterable[RoleLike]) -> bool:
    return has_role(roles, Role.BUYER)


def can_modify(owner_id: Optional[str], user_id: str, roles: Iterable[RoleLike]) -> bool:
    """Ownership-or-admin rule for editing and deleting reviews and workflows."""
    return (owner_id is not None and owner_id == user_id) or is_admin(roles)
