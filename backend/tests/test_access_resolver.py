# tests/test_access_resolver.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from storeconsole.access.bootstrap import BootstrapGrantPolicy
from storeconsole.access.context import AccessContext, OverrideReason
from storeconsole.access.errors import (
    AccessResolutionFault,
    InvalidStoreId,
    MembershipNotActive,
    NoMembership,
    StoreNotSpecified,
    StoreUnavailable,
)
from storeconsole.access.overrides import PrincipalOverride
from storeconsole.access.resolver import AccessResolver
from storeconsole.core.roles import MembershipStatus, Role

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)
LONG_AGO = T0 - timedelta(days=30)


def build_resolver(repo, *, now=T0, break_glass=None, timeout=1.0) -> AccessResolver:
    return AccessResolver(
        repo,
        overrides=PrincipalOverride(break_glass),
        bootstrap=BootstrapGrantPolicy(repo, clock=lambda: now),
        timeout=timeout,
    )


# ---------------------------------------------------------
# Input
# ---------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [None, "", "   "])
async def test_missing_store_id(memory_repo, make_principal, raw):
    with pytest.raises(StoreNotSpecified) as exc:
        await build_resolver(memory_repo).resolve(make_principal(), raw)
    assert exc.value.status_code == 400
    assert exc.value.code == "store_required"


@pytest.mark.asyncio
async def test_malformed_store_id(memory_repo, make_principal):
    with pytest.raises(InvalidStoreId):
        await build_resolver(memory_repo).resolve(make_principal(), "not-a-uuid")


# ---------------------------------------------------------
# Ordinary path
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_active_member_resolves_role(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(name="Acme", created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="manager")

    ctx = await build_resolver(memory_repo).resolve(p, str(store.id))

    assert ctx == AccessContext(store_id=store.id, store_name="Acme", role=Role.MANAGER)
    assert ctx.is_override is False


@pytest.mark.asyncio
async def test_unknown_store_is_unavailable(memory_repo, make_principal):
    with pytest.raises(StoreUnavailable):
        await build_resolver(memory_repo).resolve(make_principal(), uuid.uuid4())


@pytest.mark.asyncio
async def test_deactivated_store_blocks_active_owner(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(is_active=False, created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="owner")

    with pytest.raises(StoreUnavailable) as exc:
        await build_resolver(memory_repo).resolve(p, store.id)
    assert exc.value.code == "store_unavailable"


@pytest.mark.asyncio
async def test_orphaned_store_denies_everyone(memory_repo, make_principal):
    store = memory_repo.add_store(created_at=LONG_AGO)

    with pytest.raises(NoMembership) as exc:
        await build_resolver(memory_repo).resolve(make_principal(), store.id)
    assert exc.value.message == "Access denied"
    assert memory_repo.memberships == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [r.value for r in Role])
@pytest.mark.parametrize(
    "status,code",
    [
        ("pending", "membership_pending"),
        ("suspended", "membership_suspended"),
    ],
)
async def test_non_active_status_denies_every_role(memory_repo, make_principal, role, status, code):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role=role, status=status)

    with pytest.raises(MembershipNotActive) as exc:
        await build_resolver(memory_repo).resolve(p, store.id)
    assert exc.value.code == code
    assert exc.value.status is MembershipStatus(status)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("role", list(Role))
async def test_active_status_allows_every_role(memory_repo, make_principal, role):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role=role.value, status="active")

    ctx = await build_resolver(memory_repo).resolve(p, store.id)
    assert ctx.role is role


@pytest.mark.asyncio
async def test_pending_and_suspended_messages_differ(memory_repo, make_principal):
    store = memory_repo.add_store(created_at=LONG_AGO)
    pending, suspended = make_principal(), make_principal()
    memory_repo.add_membership(pending.id, store.id, role="staff", status="pending")
    memory_repo.add_membership(suspended.id, store.id, role="staff", status="suspended")
    resolver = build_resolver(memory_repo)

    with pytest.raises(MembershipNotActive) as p_exc:
        await resolver.resolve(pending, store.id)
    with pytest.raises(MembershipNotActive) as s_exc:
        await resolver.resolve(suspended, store.id)

    assert "pending approval" in p_exc.value.message
    assert "suspended" in s_exc.value.message


@pytest.mark.asyncio
async def test_unrecognised_status_gets_generic_denial(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="owner", status="archived")

    with pytest.raises(MembershipNotActive) as exc:
        await build_resolver(memory_repo).resolve(p, store.id)
    assert exc.value.code == "membership_inactive"
    assert exc.value.message == "Access denied"
    assert exc.value.status is None


@pytest.mark.asyncio
async def test_unrecognised_role_is_denied(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="superuser", status="active")

    with pytest.raises(NoMembership):
        await build_resolver(memory_repo).resolve(p, store.id)


# ---------------------------------------------------------
# Overrides
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_platform_admin_acts_as_owner_without_membership(memory_repo, make_principal):
    admin = make_principal(is_platform_admin=True)
    store = memory_repo.add_store(name="Acme", created_at=LONG_AGO)

    ctx = await build_resolver(memory_repo).resolve(admin, store.id)

    assert ctx.role is Role.OWNER
    assert ctx.override is OverrideReason.PLATFORM_ADMIN
    assert memory_repo.memberships == {}


@pytest.mark.asyncio
async def test_platform_admin_ignores_own_suspended_membership(memory_repo, make_principal):
    admin = make_principal(is_platform_admin=True)
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(admin.id, store.id, role="staff", status="suspended")

    ctx = await build_resolver(memory_repo).resolve(admin, store.id)
    assert ctx.role is Role.OWNER


@pytest.mark.asyncio
async def test_break_glass_principal_acts_as_owner(memory_repo, make_principal):
    operator = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)

    ctx = await build_resolver(memory_repo, break_glass=operator.id).resolve(operator, store.id)

    assert ctx.role is Role.OWNER
    assert ctx.override is OverrideReason.BREAK_GLASS


@pytest.mark.asyncio
async def test_break_glass_disabled_by_default(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)

    with pytest.raises(NoMembership):
        await build_resolver(memory_repo).resolve(p, store.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("is_active", [False, None])
async def test_overrides_respect_deactivation_and_missing_store(memory_repo, make_principal, is_active):
    admin = make_principal(is_platform_admin=True)
    store_id = uuid.uuid4()
    if is_active is not None:
        store_id = memory_repo.add_store(is_active=is_active).id

    with pytest.raises(StoreUnavailable):
        await build_resolver(memory_repo).resolve(admin, store_id)


@pytest.mark.asyncio
async def test_override_skips_membership_lookup(memory_repo, make_principal):
    admin = make_principal(is_platform_admin=True)
    store = memory_repo.add_store()
    memory_repo.fail_on.add("get_membership")

    ctx = await build_resolver(memory_repo).resolve(admin, store.id)

    assert ctx.override is OverrideReason.PLATFORM_ADMIN
    assert memory_repo.insert_attempts == 0


# ---------------------------------------------------------
# Fail closed
# ---------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["get_store", "get_membership"])
async def test_store_fault_never_allows(memory_repo, make_principal, operation):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="owner")
    memory_repo.fail_on.add(operation)

    with pytest.raises(AccessResolutionFault) as exc:
        await build_resolver(memory_repo).resolve(p, store.id)
    assert exc.value.status_code == 500
    assert exc.value.message == "Internal error resolving access"


@pytest.mark.asyncio
async def test_bootstrap_insert_fault_never_allows(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(created_at=T0, created_by=p.id)
    memory_repo.fail_on.add("insert_membership")

    with pytest.raises(AccessResolutionFault):
        await build_resolver(memory_repo).resolve(p, store.id)
    assert memory_repo.memberships == {}


@pytest.mark.asyncio
async def test_store_timeout_never_allows(memory_repo, make_principal):
    p = make_principal()
    store = memory_repo.add_store(created_at=LONG_AGO)
    memory_repo.add_membership(p.id, store.id, role="owner")
    memory_repo.delays["get_membership"] = 1.0

    with pytest.raises(AccessResolutionFault):
        await build_resolver(memory_repo, timeout=0.05).resolve(p, store.id)


# ---------------------------------------------------------
# Scenario: creator bootstrap, then a stranger
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_creator_bootstrap_then_stranger_denied(memory_repo, make_principal):
    p, q = make_principal(), make_principal()
    store = memory_repo.add_store(name="T", created_at=T0, created_by=p.id)

    ctx = await build_resolver(memory_repo, now=T0 + timedelta(seconds=1)).resolve(p, store.id)

    assert ctx == AccessContext(store_id=store.id, store_name="T", role=Role.OWNER)
    granted = memory_repo.memberships[(p.id, store.id)]
    assert granted.role == "owner"
    assert granted.status == "active"
    assert granted.is_primary is True

    with pytest.raises(NoMembership):
        await build_resolver(memory_repo, now=T0 + timedelta(minutes=10)).resolve(q, store.id)
    assert (q.id, store.id) not in memory_repo.memberships


@pytest.mark.asyncio
async def test_young_store_grants_nothing_to_non_creator(memory_repo, make_principal):
    creator, stranger = make_principal(), make_principal()
    store = memory_repo.add_store(created_at=T0, created_by=creator.id)

    with pytest.raises(NoMembership):
        await build_resolver(memory_repo, now=T0 + timedelta(seconds=1)).resolve(stranger, store.id)
    assert memory_repo.insert_attempts == 0
