# storeconsole/access/resolver.py

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Optional, TypeVar

from storeconsole.access.bootstrap import BootstrapGrantPolicy
from storeconsole.access.context import AccessContext, Principal
from storeconsole.access.errors import (
    AccessResolutionFault,
    InvalidStoreId,
    MembershipNotActive,
    NoMembership,
    StoreNotSpecified,
    StoreUnavailable,
)
from storeconsole.access.overrides import PrincipalOverride
from storeconsole.access.repository import MembershipRepository, StoreError
from storeconsole.core.roles import MembershipStatus, Role

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


def parse_store_id(raw: object) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    value = str(raw or "").strip()
    if not value:
        raise StoreNotSpecified()
    try:
        return uuid.UUID(value)
    except ValueError:
        raise InvalidStoreId()


class AccessResolver:
    """
    Decides whether a principal may act on a store and under which role.

    Order: overrides, then store lookup, membership lookup, bootstrap grant,
    status check. Every repository call is bounded by ``timeout``; timeouts
    and StoreError become AccessResolutionFault, so a broken store never
    resolves to an allow.
    """

    def __init__(
        self,
        repository: MembershipRepository,
        *,
        overrides: Optional[PrincipalOverride] = None,
        bootstrap: Optional[BootstrapGrantPolicy] = None,
        timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS,
    ):
        self.repository = repository
        self.overrides = overrides or PrincipalOverride()
        self.bootstrap = bootstrap or BootstrapGrantPolicy(repository)
        self.timeout = timeout

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Access resolution timed out during %s", operation)
            raise AccessResolutionFault() from exc
        except StoreError as exc:
            logger.error("Access resolution failed during %s", operation, exc_info=True)
            raise AccessResolutionFault() from exc

    async def resolve(self, principal: Principal, store_id: object) -> AccessContext:
        store_uuid = parse_store_id(store_id)

        reason = self.overrides.match(principal)
        if reason is not None:
            store = await self._call("get_store", self.repository.get_store(store_uuid))
            return self.overrides.grant(principal, reason, store)

        store = await self._call("get_store", self.repository.get_store(store_uuid))
        if store is None or not store.is_active:
            logger.info("Access denied: store unavailable user=%s store=%s", principal.id, store_uuid)
            raise StoreUnavailable()

        membership = await self._call(
            "get_membership", self.repository.get_membership(principal.id, store.id)
        )
        if membership is None:
            membership = await self._call("bootstrap", self.bootstrap.attempt(principal.id, store))
        if membership is None:
            logger.info("Access denied: no membership user=%s store=%s", principal.id, store.id)
            raise NoMembership()

        status = MembershipStatus.parse(membership.status)
        if status is not MembershipStatus.ACTIVE:
            logger.info(
                "Access denied: membership status=%s user=%s store=%s",
                membership.status,
                principal.id,
                store.id,
            )
            raise MembershipNotActive(status)

        role = Role.parse(membership.role)
        if role is None:
            logger.warning(
                "Access denied: unknown membership role=%r user=%s store=%s",
                membership.role,
                principal.id,
                store.id,
            )
            raise NoMembership()

        return AccessContext(store_id=store.id, store_name=store.name, role=role)
