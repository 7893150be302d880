# storeconsole/core/roles.py

from __future__ import annotations

import enum
from typing import Optional


class Role(str, enum.Enum):
    OWNER = "owner"      # creator / ultimate authority
    ADMIN = "admin"      # manages members and settings
    MANAGER = "manager"
    STAFF = "staff"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Return the Role for a stored value, or None when it is not a known role."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


_ROLE_RANK = {
    Role.OWNER: 40,
    Role.ADMIN: 30,
    Role.MANAGER: 20,
    Role.STAFF: 10,
}


class MembershipStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"

    @classmethod
    def parse(cls, value: object) -> Optional["MembershipStatus"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None
