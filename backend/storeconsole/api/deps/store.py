from __future__ import annotations

from datetime import timedelta
from typing import Callable, Union

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storeconsole.access.bootstrap import BootstrapGrantPolicy
from storeconsole.access.context import AccessContext, Principal
from storeconsole.access.gate import PermissionGate, normalize_roles
from storeconsole.access.locator import locate_store_id
from storeconsole.access.overrides import PrincipalOverride
from storeconsole.access.resolver import AccessResolver
from storeconsole.api.deps.auth import get_current_principal
from storeconsole.core.config import settings
from storeconsole.core.roles import Role
from storeconsole.crud.store_membership import SqlMembershipRepository
from storeconsole.db.session import get_db


async def get_membership_repository(db: AsyncSession = Depends(get_db)) -> SqlMembershipRepository:
    return SqlMembershipRepository(db)


async def get_access_resolver(
    repo: SqlMembershipRepository = Depends(get_membership_repository),
) -> AccessResolver:
    return AccessResolver(
        repo,
        overrides=PrincipalOverride(settings.BREAK_GLASS_USER_ID),
        bootstrap=BootstrapGrantPolicy(
            repo,
            window=timedelta(seconds=settings.STORE_BOOTSTRAP_WINDOW_SECONDS),
        ),
        timeout=settings.ACCESS_STORE_TIMEOUT_SECONDS,
    )


async def get_access_context(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> AccessContext:
    """
    Resolve the store named by the request (header > query > path > body)
    and attach the result to request.state for the rest of the request.
    """
    store_id = await locate_store_id(request)
    context = await resolver.resolve(principal, store_id)
    request.state.access_context = context
    return context


def require_store_roles(*allowed_roles: Union[Role, str]) -> Callable:
    """
    Enforce AccessContext.role in allowed_roles (owner/admin/manager/staff).
    """
    allowed = normalize_roles(allowed_roles)

    async def _checker(context: AccessContext = Depends(get_access_context)) -> AccessContext:
        return PermissionGate.check(context, allowed)

    return _checker
