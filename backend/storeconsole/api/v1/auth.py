# backend/storeconsole/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from storeconsole.access.context import Principal
from storeconsole.api.deps.auth import get_current_principal
from storeconsole.schemas.auth import MeResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    """
    Returns the identity the access gate sees for this token.
    """
    return MeResponse(
        id=str(principal.id),
        email=principal.email,
        role=principal.role,
        is_platform_admin=principal.is_platform_admin,
    )
