# storeconsole/crud/store_membership.py
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from storeconsole.access.repository import (
    MembershipConflict,
    MembershipRecord,
    StoreError,
    StoreRecord,
)
from storeconsole.core.roles import MembershipStatus, Role
from storeconsole.models.store import Store
from storeconsole.models.store_membership import StoreMembership


class LastOwnerError(Exception):
    """The change would leave the store without an active owner."""


def _membership_rows(user_id: uuid.UUID, store_id: uuid.UUID, stmt):
    return stmt.where(StoreMembership.user_id == user_id).where(StoreMembership.store_id == store_id)


def _leaves_an_active_owner(user_id: uuid.UUID, store_id: uuid.UUID):
    """
    WHERE clause for writes that can take an owner away: the target is not an
    owner, or another active owner of the store remains.
    """
    other = aliased(StoreMembership)
    return or_(
        StoreMembership.role != Role.OWNER.value,
        exists().where(
            other.store_id == store_id,
            other.user_id != user_id,
            other.role == Role.OWNER.value,
            other.status == MembershipStatus.ACTIVE.value,
        ),
    )


def store_record(store: Store) -> StoreRecord:
    return StoreRecord(
        id=store.id,
        name=store.name,
        is_active=bool(store.is_active),
        created_at=store.created_at,
        created_by=store.created_by_user_id,
    )


def membership_record(m: StoreMembership) -> MembershipRecord:
    return MembershipRecord(
        user_id=m.user_id,
        store_id=m.store_id,
        role=m.role,
        status=m.status,
        is_primary=bool(m.is_primary),
    )


class SqlMembershipRepository:
    """
    MembershipRepository backed by the request's AsyncSession.

    Writes commit immediately: the access gate has no surrounding transaction
    to join, and a committed bootstrap grant is what concurrent requests
    re-read after a uniqueness conflict.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError(f"{operation} failed") from exc

    async def _get_row(self, user_id: uuid.UUID, store_id: uuid.UUID) -> Optional[StoreMembership]:
        stmt = (
            select(StoreMembership)
            .where(StoreMembership.user_id == user_id)
            .where(StoreMembership.store_id == store_id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------
    async def get_store(self, store_id: uuid.UUID) -> Optional[StoreRecord]:
        async with self._guard("get_store"):
            stmt = select(Store).where(Store.id == store_id).execution_options(populate_existing=True)
            store = (await self.db.execute(stmt)).scalar_one_or_none()
        return store_record(store) if store is not None else None

    async def get_membership(self, user_id: uuid.UUID, store_id: uuid.UUID) -> Optional[MembershipRecord]:
        async with self._guard("get_membership"):
            row = await self._get_row(user_id, store_id)
        return membership_record(row) if row is not None else None

    async def list_memberships(self, store_id: uuid.UUID) -> List[MembershipRecord]:
        async with self._guard("list_memberships"):
            stmt = (
                select(StoreMembership)
                .where(StoreMembership.store_id == store_id)
                .order_by(StoreMembership.created_at.asc())
            )
            rows = (await self.db.execute(stmt)).scalars().all()
        return [membership_record(r) for r in rows]

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------
    async def insert_membership(
        self,
        user_id: uuid.UUID,
        store_id: uuid.UUID,
        role: Role,
        status: MembershipStatus,
        is_primary: bool,
    ) -> MembershipRecord:
        row = StoreMembership(
            user_id=user_id,
            store_id=store_id,
            role=Role(role).value,
            status=MembershipStatus(status).value,
            is_primary=is_primary,
        )
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise MembershipConflict(user_id, store_id) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("insert_membership failed") from exc
        return membership_record(row)

    async def _lock_owners(self, store_id: uuid.UUID) -> None:
        # Serializes owner-reducing writes per store (no-op on SQLite, which serializes writers).
        await self.db.execute(
            select(StoreMembership.id)
            .where(StoreMembership.store_id == store_id)
            .where(StoreMembership.role == Role.OWNER.value)
            .with_for_update()
        )

    async def _guarded_write(self, stmt, user_id: uuid.UUID, store_id: uuid.UUID, message: str) -> bool:
        """
        Run an owner-reducing UPDATE/DELETE whose WHERE clause carries the
        last-owner guard. Returns False when the row does not exist; raises
        LastOwnerError when it exists but the guard refused the write.
        """
        await self._lock_owners(store_id)
        res = await self.db.execute(stmt.execution_options(synchronize_session=False))
        await self.db.commit()
        if res.rowcount:
            return True
        if await self._get_row(user_id, store_id) is not None:
            raise LastOwnerError(message)
        return False

    async def update_membership_role(
        self, user_id: uuid.UUID, store_id: uuid.UUID, role: Role
    ) -> Optional[MembershipRecord]:
        role = Role(role)
        stmt = _membership_rows(user_id, store_id, update(StoreMembership)).values(role=role.value)
        if role is not Role.OWNER:
            stmt = stmt.where(_leaves_an_active_owner(user_id, store_id))
        async with self._guard("update_membership_role"):
            found = await self._guarded_write(
                stmt, user_id, store_id, "Cannot demote the only owner of the store"
            )
            row = await self._get_row(user_id, store_id) if found else None
        return membership_record(row) if row is not None else None

    async def update_membership_status(
        self, user_id: uuid.UUID, store_id: uuid.UUID, status: MembershipStatus
    ) -> Optional[MembershipRecord]:
        status = MembershipStatus(status)
        stmt = _membership_rows(user_id, store_id, update(StoreMembership)).values(status=status.value)
        if status is not MembershipStatus.ACTIVE:
            stmt = stmt.where(_leaves_an_active_owner(user_id, store_id))
        async with self._guard("update_membership_status"):
            found = await self._guarded_write(
                stmt, user_id, store_id, "Cannot deactivate the only owner of the store"
            )
            row = await self._get_row(user_id, store_id) if found else None
        return membership_record(row) if row is not None else None

    async def delete_membership(self, user_id: uuid.UUID, store_id: uuid.UUID) -> bool:
        """
        Delete a membership unless it is the store's last active owner.
        Returns False when there was nothing to delete.
        """
        stmt = _membership_rows(user_id, store_id, delete(StoreMembership)).where(
            _leaves_an_active_owner(user_id, store_id)
        )
        async with self._guard("delete_membership"):
            return await self._guarded_write(stmt, user_id, store_id, "Cannot remove the only owner of the store")

    async def set_primary_membership(self, user_id: uuid.UUID, store_id: uuid.UUID) -> Optional[MembershipRecord]:
        """
        Clear every other primary flag of the user, then set this one.
        Two single-statement updates; no cross-row transaction is assumed.
        """
        async with self._guard("set_primary_membership"):
            row = await self._get_row(user_id, store_id)
            if row is None:
                return None
            await self.db.execute(
                update(StoreMembership)
                .where(StoreMembership.user_id == user_id)
                .where(StoreMembership.store_id != store_id)
                .where(StoreMembership.is_primary.is_(True))
                .values(is_primary=False)
            )
            await self.db.commit()
            await self.db.execute(
                update(StoreMembership)
                .where(StoreMembership.user_id == user_id)
                .where(StoreMembership.store_id == store_id)
                .values(is_primary=True)
            )
            await self.db.commit()
            row = await self._get_row(user_id, store_id)
        return membership_record(row) if row is not None else None
