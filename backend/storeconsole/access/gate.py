# storeconsole/access/gate.py

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Union

from storeconsole.access.context import AccessContext
from storeconsole.access.errors import InsufficientPermission
from storeconsole.core.roles import Role

logger = logging.getLogger(__name__)


def normalize_roles(roles: Iterable[Union[Role, str]]) -> FrozenSet[Role]:
    """
    Turn a route's allowed roles into a frozenset of Role.
    Unknown names fail at declaration time rather than silently denying.
    """
    allowed = set()
    unknown = []
    for r in roles:
        role = Role.parse(r)
        if role is None:
            unknown.append(r)
        else:
            allowed.add(role)
    if unknown:
        raise ValueError(
            f"Unknown store role(s): {sorted(map(str, unknown))}. Allowed: {sorted(r.value for r in Role)}"
        )
    if not allowed:
        raise ValueError("At least one allowed role is required")
    return frozenset(allowed)


class PermissionGate:
    """Stateless allowed-role check applied after access resolution."""

    @staticmethod
    def allow(role: Role, allowed_roles: FrozenSet[Role]) -> bool:
        return role in allowed_roles

    @classmethod
    def check(cls, context: AccessContext, allowed_roles: FrozenSet[Role]) -> AccessContext:
        if not cls.allow(context.role, allowed_roles):
            logger.info(
                "Permission denied: store=%s role=%s",
                context.store_id,
                context.role.value,
            )
            raise InsufficientPermission(context.role)
        return context
