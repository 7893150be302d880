# storeconsole/access/context.py

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Optional

from storeconsole.core.roles import Role


class OverrideReason(str, enum.Enum):
    BREAK_GLASS = "break_glass"
    PLATFORM_ADMIN = "platform_admin"


@dataclass(frozen=True)
class Principal:
    """
    Verified identity handed over by the credential layer.

    is_platform_admin only ever comes from a signed token claim.
    """

    id: uuid.UUID
    email: str
    role: str = "user"
    is_platform_admin: bool = False


@dataclass(frozen=True)
class AccessContext:
    """
    Resolved (store, role) pair for one request.

    Built once by AccessResolver; route handlers take the store id from here
    and never from the raw request.
    """

    store_id: uuid.UUID
    store_name: str
    role: Role
    # Set when an override bypassed membership lookup. Informational only.
    override: Optional[OverrideReason] = None

    @property
    def is_override(self) -> bool:
        return self.override is not None
