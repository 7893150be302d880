# storeconsole/access/bootstrap.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from storeconsole.access.repository import (
    MembershipConflict,
    MembershipRecord,
    MembershipRepository,
    StoreError,
    StoreRecord,
)
from storeconsole.core.roles import MembershipStatus, Role

logger = logging.getLogger(__name__)

DEFAULT_BOOTSTRAP_WINDOW = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BootstrapGrantPolicy:
    """
    Creates the owner membership for a store its creator opened moments ago.

    Store creation and owner-membership creation are two writes; a request
    that lands between them (or after a failed second write) would otherwise
    be denied. Within the window the first request heals the gap, and
    concurrent requests converge on the same row through the uniqueness
    constraint on (user_id, store_id).
    """

    def __init__(
        self,
        repository: MembershipRepository,
        *,
        window: timedelta = DEFAULT_BOOTSTRAP_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.window = window
        self.clock = clock

    def is_eligible(self, user_id: uuid.UUID, store: StoreRecord, now: Optional[datetime] = None) -> bool:
        # Only the recorded creator, only while the store is active and young.
        if not store.is_active or store.created_by is None or store.created_by != user_id:
            return False
        now = _as_utc(now or self.clock())
        return now - _as_utc(store.created_at) < self.window

    async def attempt(self, user_id: uuid.UUID, store: StoreRecord) -> Optional[MembershipRecord]:
        """
        Returns the owner membership for (user_id, store), inserting it if the
        store is still inside the window. Returns None when not eligible.
        """
        if not self.is_eligible(user_id, store):
            return None

        try:
            membership = await self.repository.insert_membership(
                user_id,
                store.id,
                role=Role.OWNER,
                status=MembershipStatus.ACTIVE,
                is_primary=True,
            )
        except MembershipConflict:
            # Another request for the same principal won the insert.
            membership = await self.repository.get_membership(user_id, store.id)
            if membership is None:
                raise StoreError(
                    f"membership for user={user_id} store={store.id} conflicted on insert but is missing on re-read"
                )
            logger.info("Bootstrap grant already present: user=%s store=%s", user_id, store.id)
            return membership

        logger.info("Bootstrap owner grant created: user=%s store=%s", user_id, store.id)
        return membership
