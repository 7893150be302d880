from __future__ import annotations

import asyncio
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Set, Tuple

# Settings are read at import time; point them at test values first.
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-for-the-store-console-suite")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from storeconsole.access.context import Principal
from storeconsole.access.repository import (
    MembershipConflict,
    MembershipRecord,
    StoreError,
    StoreRecord,
)
from storeconsole.core.roles import MembershipStatus, Role
from storeconsole.core.security import create_access_token
from storeconsole.db.session import get_db

# Ensure Base + models are registered before create_all
from storeconsole.db.base import Base
import storeconsole.models  # noqa: F401


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------
# In-memory repository (resolver / bootstrap properties)
# ---------------------------------------------------------
class InMemoryMembershipRepository:
    """
    MembershipRepository kept in dicts. Enforces (user_id, store_id)
    uniqueness like the database does, and can inject faults, delays and a
    read barrier that lines up concurrent membership reads.
    """

    def __init__(self):
        self.stores: Dict[uuid.UUID, StoreRecord] = {}
        self.memberships: Dict[Tuple[uuid.UUID, uuid.UUID], MembershipRecord] = {}
        self.fail_on: Set[str] = set()
        self.delays: Dict[str, float] = {}
        self.insert_attempts = 0
        self._readers_expected = 0
        self._readers = 0
        self._read_barrier: Optional[asyncio.Event] = None

    async def _enter(self, operation: str) -> None:
        delay = self.delays.get(operation)
        if delay:
            await asyncio.sleep(delay)
        else:
            await asyncio.sleep(0)
        if operation in self.fail_on:
            raise StoreError(f"{operation} unavailable")

    def hold_membership_reads(self, count: int) -> None:
        """Block get_membership until `count` callers are waiting in it."""
        self._readers_expected = count
        self._readers = 0
        self._read_barrier = asyncio.Event()

    def add_store(
        self,
        *,
        name: str = "Test Store",
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        created_by: Optional[uuid.UUID] = None,
    ) -> StoreRecord:
        store = StoreRecord(
            id=uuid.uuid4(),
            name=name,
            is_active=is_active,
            created_at=created_at or utcnow(),
            created_by=created_by,
        )
        self.stores[store.id] = store
        return store

    def add_membership(
        self,
        user_id: uuid.UUID,
        store_id: uuid.UUID,
        role: str = Role.OWNER.value,
        status: str = MembershipStatus.ACTIVE.value,
        is_primary: bool = False,
    ) -> MembershipRecord:
        m = MembershipRecord(user_id=user_id, store_id=store_id, role=role, status=status, is_primary=is_primary)
        self.memberships[(user_id, store_id)] = m
        return m

    async def get_store(self, store_id):
        await self._enter("get_store")
        return self.stores.get(store_id)

    async def get_membership(self, user_id, store_id):
        await self._enter("get_membership")
        if self._read_barrier is not None:
            self._readers += 1
            if self._readers >= self._readers_expected:
                self._read_barrier.set()
            await self._read_barrier.wait()
        return self.memberships.get((user_id, store_id))

    async def insert_membership(self, user_id, store_id, role, status, is_primary):
        self.insert_attempts += 1
        await self._enter("insert_membership")
        if (user_id, store_id) in self.memberships:
            raise MembershipConflict(user_id, store_id)
        return self.add_membership(user_id, store_id, Role(role).value, MembershipStatus(status).value, is_primary)

    async def update_membership_role(self, user_id, store_id, role):
        await self._enter("update_membership_role")
        m = self.memberships.get((user_id, store_id))
        if m is None:
            return None
        return self.add_membership(user_id, store_id, Role(role).value, m.status, m.is_primary)

    async def update_membership_status(self, user_id, store_id, status):
        await self._enter("update_membership_status")
        m = self.memberships.get((user_id, store_id))
        if m is None:
            return None
        return self.add_membership(user_id, store_id, m.role, MembershipStatus(status).value, m.is_primary)

    async def list_memberships(self, store_id):
        await self._enter("list_memberships")
        return [m for (_, sid), m in self.memberships.items() if sid == store_id]


@pytest.fixture()
def memory_repo() -> InMemoryMembershipRepository:
    return InMemoryMembershipRepository()


@pytest.fixture()
def make_principal():
    def _make(email: Optional[str] = None, is_platform_admin: bool = False) -> Principal:
        uid = uuid.uuid4()
        return Principal(
            id=uid,
            email=email or f"user-{uid.hex[:8]}@example.com",
            is_platform_admin=is_platform_admin,
        )

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(principal: Principal) -> Dict[str, str]:
        token = create_access_token(
            str(principal.id),
            email=principal.email,
            role=principal.role,
            is_platform_admin=principal.is_platform_admin,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------
# Database (fresh SQLite file per test)
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store_console.db'}",
        future=True,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from storeconsole.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac
