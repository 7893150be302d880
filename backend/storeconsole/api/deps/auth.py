from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status

from storeconsole.access.context import Principal
from storeconsole.core.security import bearer_scheme, decode_access_token


async def get_current_principal(credentials=Depends(bearer_scheme)) -> Principal:
    """
    Dependency for protected endpoints. Identity comes from the verified
    token only; nothing in the request body or headers can raise privileges.
    """
    claims = decode_access_token(credentials.credentials)

    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    return Principal(
        id=user_id,
        email=str(claims.get("email") or ""),
        role=str(claims.get("role") or "user"),
        is_platform_admin=claims.get("is_platform_admin") is True,
    )
