# storeconsole/api/v1/stores.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeconsole.access.context import AccessContext, Principal
from storeconsole.api.deps.auth import get_current_principal
from storeconsole.api.deps.store import (
    get_access_context,
    get_membership_repository,
    require_store_roles,
)
from storeconsole.core.roles import MembershipStatus, Role
from storeconsole.crud.store_membership import SqlMembershipRepository
from storeconsole.crud.user import ensure_user
from storeconsole.db.session import get_db
from storeconsole.models.store import Store
from storeconsole.models.store_membership import StoreMembership
from storeconsole.schemas.store import MyStoreOut, StoreCreate, StoreDetailOut, StoreOut, StoreUpdate
from storeconsole.schemas.store_membership import MembershipOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])


async def _load_store(db: AsyncSession, context: AccessContext) -> Store:
    store = await db.get(Store, context.store_id)
    if store is None:
        # Deleted between resolution and this read.
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "store_not_found", "message": "Store not found"},
        )
    return store


# ---------------------------------------------------------
# Store creation
# ---------------------------------------------------------
@router.post("", response_model=StoreOut, status_code=status.HTTP_201_CREATED)
async def create_store(
    payload: StoreCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await ensure_user(db, principal)

    store = Store(
        name=payload.name,
        description=payload.description,
        logo_url=str(payload.logo_url) if payload.logo_url else None,
        created_by_user_id=principal.id,
        is_active=True,
    )
    db.add(store)
    await db.flush()

    # First store of a user becomes their primary one.
    has_primary = (
        await db.execute(
            select(StoreMembership.id)
            .where(StoreMembership.user_id == principal.id)
            .where(StoreMembership.is_primary.is_(True))
            .limit(1)
        )
    ).scalar_one_or_none() is not None

    db.add(
        StoreMembership(
            user_id=principal.id,
            store_id=store.id,
            role=Role.OWNER.value,
            status=MembershipStatus.ACTIVE.value,
            is_primary=not has_primary,
        )
    )
    await db.commit()
    await db.refresh(store)

    logger.info("Store created: store=%s owner=%s", store.id, principal.id)
    return store


# ---------------------------------------------------------
# Store list (store picker)
# ---------------------------------------------------------
@router.get("", response_model=List[MyStoreOut])
async def list_my_stores(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Returns every store the caller has a membership in, whatever its status,
    so the UI can show pending/suspended entries too.
    """
    stmt = (
        select(Store, StoreMembership)
        .join(StoreMembership, StoreMembership.store_id == Store.id)
        .where(StoreMembership.user_id == principal.id)
        .order_by(StoreMembership.is_primary.desc(), Store.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        MyStoreOut(
            id=store.id,
            name=store.name,
            description=store.description,
            logo_url=store.logo_url,
            is_active=store.is_active,
            created_at=store.created_at,
            role=membership.role,
            status=membership.status,
            is_primary=membership.is_primary,
        )
        for store, membership in rows
    ]


# ---------------------------------------------------------
# Store scoped endpoints
# ---------------------------------------------------------
@router.get("/{store_id}", response_model=StoreDetailOut)
async def get_store(
    db: AsyncSession = Depends(get_db),
    context: AccessContext = Depends(get_access_context),
):
    store = await _load_store(db, context)
    return StoreDetailOut(
        id=store.id,
        name=store.name,
        description=store.description,
        logo_url=store.logo_url,
        is_active=store.is_active,
        created_at=store.created_at,
        role=context.role,
        override=context.override.value if context.override else None,
    )


@router.put("/{store_id}", response_model=StoreOut)
async def update_store(
    payload: StoreUpdate,
    db: AsyncSession = Depends(get_db),
    context: AccessContext = Depends(require_store_roles(Role.OWNER)),
):
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "no_fields", "message": "No fields provided to update."},
        )

    store = await _load_store(db, context)
    if "name" in data and data["name"] is not None:
        store.name = data["name"]
    if "description" in data:
        store.description = data["description"]
    if "logo_url" in data:
        store.logo_url = str(data["logo_url"]) if data["logo_url"] else None
    if "is_active" in data and data["is_active"] is not None:
        store.is_active = data["is_active"]
        if not store.is_active:
            logger.warning("Store deactivated: store=%s", store.id)

    await db.commit()
    await db.refresh(store)
    return store


@router.delete("/{store_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_store(
    db: AsyncSession = Depends(get_db),
    context: AccessContext = Depends(require_store_roles(Role.OWNER)),
):
    await db.execute(delete(StoreMembership).where(StoreMembership.store_id == context.store_id))
    await db.execute(delete(Store).where(Store.id == context.store_id))
    await db.commit()
    logger.warning("Store deleted: store=%s", context.store_id)
    return None


@router.post("/{store_id}/primary", response_model=MembershipOut)
async def set_primary_store(
    principal: Principal = Depends(get_current_principal),
    context: AccessContext = Depends(get_access_context),
    repo: SqlMembershipRepository = Depends(get_membership_repository),
):
    """
    Mark this store as the caller's primary store; every other primary flag
    of the caller is cleared first.
    """
    membership = await repo.set_primary_membership(principal.id, context.store_id)
    if membership is None:
        # Override access has no membership row to flag.
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "membership_not_found", "message": "You have no membership in this store"},
        )
    return membership
