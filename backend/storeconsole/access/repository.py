# storeconsole/access/repository.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from storeconsole.core.roles import MembershipStatus, Role


class StoreError(Exception):
    """The backing store failed (unreachable, timed out, unexpected response)."""


class MembershipConflict(Exception):
    """A membership for (user_id, store_id) already exists."""

    def __init__(self, user_id: uuid.UUID, store_id: uuid.UUID):
        self.user_id = user_id
        self.store_id = store_id
        super().__init__(f"membership already exists for user={user_id} store={store_id}")


@dataclass(frozen=True)
class StoreRecord:
    id: uuid.UUID
    name: str
    is_active: bool
    created_at: datetime
    created_by: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class MembershipRecord:
    user_id: uuid.UUID
    store_id: uuid.UUID
    # Raw stored values; unknown ones are handled by the resolver.
    role: str
    status: str
    is_primary: bool


class MembershipRepository(Protocol):
    """
    Storage operations the access gate depends on.

    Implementations raise StoreError for infrastructure failures and
    MembershipConflict when an insert hits the (user_id, store_id) uniqueness
    constraint. Each operation is atomic on its own; callers get no
    multi-statement transaction.
    """

    async def get_store(self, store_id: uuid.UUID) -> Optional[StoreRecord]: ...

    async def get_membership(self, user_id: uuid.UUID, store_id: uuid.UUID) -> Optional[MembershipRecord]: ...

    async def insert_membership(
        self,
        user_id: uuid.UUID,
        store_id: uuid.UUID,
        role: Role,
        status: MembershipStatus,
        is_primary: bool,
    ) -> MembershipRecord: ...

    async def update_membership_role(
        self, user_id: uuid.UUID, store_id: uuid.UUID, role: Role
    ) -> Optional[MembershipRecord]: ...

    async def update_membership_status(
        self, user_id: uuid.UUID, store_id: uuid.UUID, status: MembershipStatus
    ) -> Optional[MembershipRecord]: ...

    async def list_memberships(self, store_id: uuid.UUID) -> List[MembershipRecord]: ...
