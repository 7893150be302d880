# storeconsole/api/v1/store_users.py
from __future__ import annotations

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storeconsole.access.context import AccessContext, Principal
from storeconsole.access.repository import MembershipConflict
from storeconsole.api.deps.auth import get_current_principal
from storeconsole.api.deps.store import get_membership_repository, require_store_roles
from storeconsole.core.roles import MembershipStatus, Role
from storeconsole.crud.store_membership import LastOwnerError, SqlMembershipRepository
from storeconsole.crud.user import get_user_by_email
from storeconsole.db.session import get_db
from storeconsole.models.store_membership import StoreMembership
from storeconsole.models.user import User
from storeconsole.schemas.store_membership import (
    MembershipOut,
    StoreMemberCreate,
    StoreMemberOut,
    StoreMemberRoleUpdate,
    StoreMemberStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores/{store_id}/users", tags=["store-users"])


def _http_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _not_found() -> HTTPException:
    return _http_error(status.HTTP_404_NOT_FOUND, "membership_not_found", "Membership not found")


def _reject_self(principal: Principal, user_id: uuid.UUID, action: str) -> None:
    if principal.id == user_id:
        raise _http_error(status.HTTP_400_BAD_REQUEST, "self_modification", f"You cannot {action} yourself")


async def _require_target_within_rank(
    repo: SqlMembershipRepository,
    context: AccessContext,
    user_id: uuid.UUID,
    action: str,
) -> None:
    target = await repo.get_membership(user_id, context.store_id)
    if target is None:
        raise _not_found()
    target_role = Role.parse(target.role)
    if target_role is not None and target_role.rank > context.role.rank:
        raise _http_error(
            status.HTTP_403_FORBIDDEN,
            "role_escalation",
            f"You cannot {action} a member above your own role",
        )


# =========================================================
# LIST + ADD (owner/admin)
# =========================================================
@router.get("", response_model=List[StoreMemberOut])
async def list_store_users(
    db: AsyncSession = Depends(get_db),
    context: AccessContext = Depends(require_store_roles(Role.OWNER, Role.ADMIN)),
):
    stmt = (
        select(StoreMembership, User)
        .join(User, User.id == StoreMembership.user_id)
        .where(StoreMembership.store_id == context.store_id)
        .order_by(StoreMembership.created_at.asc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        StoreMemberOut(
            store_id=m.store_id,
            user_id=m.user_id,
            email=u.email,
            name=u.full_name,
            role=m.role,
            status=m.status,
            is_primary=m.is_primary,
            created_at=m.created_at,
        )
        for m, u in rows
    ]


@router.post("", response_model=MembershipOut, status_code=status.HTTP_201_CREATED)
async def add_store_user(
    payload: StoreMemberCreate,
    db: AsyncSession = Depends(get_db),
    context: AccessContext = Depends(require_store_roles(Role.OWNER, Role.ADMIN)),
    repo: SqlMembershipRepository = Depends(get_membership_repository),
):
    """
    Add an existing user to the store with the given role; the membership
    starts active and non-primary.
    """
    if payload.role.rank > context.role.rank:
        raise _http_error(
            status.HTTP_403_FORBIDDEN,
            "role_escalation",
            "You cannot grant a role above your own",
        )

    user = await get_user_by_email(db, str(payload.email))
    if user is None:
        raise _http_error(status.HTTP_404_NOT_FOUND, "user_not_found", "User not found")

    if await repo.get_membership(user.id, context.store_id) is not None:
        raise _http_error(status.HTTP_409_CONFLICT, "already_member", "User is already a member of this store")

    try:
        membership = await repo.insert_membership(
            user.id,
            context.store_id,
            role=payload.role,
            status=MembershipStatus.ACTIVE,
            is_primary=False,
        )
    except MembershipConflict:
        raise _http_error(status.HTTP_409_CONFLICT, "already_member", "User is already a member of this store")

    logger.info("Member added: store=%s user=%s role=%s", context.store_id, user.id, payload.role.value)
    return membership


# =========================================================
# UPDATE (role: owner only; status: owner/admin)
# =========================================================
@router.put("/{user_id}", response_model=MembershipOut)
async def update_store_user_role(
    user_id: uuid.UUID,
    payload: StoreMemberRoleUpdate,
    principal: Principal = Depends(get_current_principal),
    context: AccessContext = Depends(require_store_roles(Role.OWNER)),
    repo: SqlMembershipRepository = Depends(get_membership_repository),
):
    _reject_self(principal, user_id, "change the role of")

    try:
        membership = await repo.update_membership_role(user_id, context.store_id, payload.role)
    except LastOwnerError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, "last_owner", str(e))

    if membership is None:
        raise _not_found()

    logger.info("Member role updated: store=%s user=%s role=%s", context.store_id, user_id, payload.role.value)
    return membership


@router.patch("/{user_id}/status", response_model=MembershipOut)
async def update_store_user_status(
    user_id: uuid.UUID,
    payload: StoreMemberStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    context: AccessContext = Depends(require_store_roles(Role.OWNER, Role.ADMIN)),
    repo: SqlMembershipRepository = Depends(get_membership_repository),
):
    _reject_self(principal, user_id, "change the status of")
    await _require_target_within_rank(repo, context, user_id, "change the status of")

    try:
        membership = await repo.update_membership_status(user_id, context.store_id, payload.status)
    except LastOwnerError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, "last_owner", str(e))

    if membership is None:
        raise _not_found()

    logger.info(
        "Member status updated: store=%s user=%s status=%s",
        context.store_id,
        user_id,
        payload.status.value,
    )
    return membership


# =========================================================
# REMOVE (owner/admin)
# =========================================================
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_store_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    context: AccessContext = Depends(require_store_roles(Role.OWNER, Role.ADMIN)),
    repo: SqlMembershipRepository = Depends(get_membership_repository),
):
    _reject_self(principal, user_id, "remove")
    await _require_target_within_rank(repo, context, user_id, "remove")

    try:
        removed = await repo.delete_membership(user_id, context.store_id)
    except LastOwnerError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, "last_owner", str(e))

    if not removed:
        raise _not_found()

    logger.info("Member removed: store=%s user=%s", context.store_id, user_id)
    return None
