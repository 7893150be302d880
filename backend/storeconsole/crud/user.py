# storeconsole/crud/user.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storeconsole.access.context import Principal
from storeconsole.models.user import User


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(User.email == User.normalize_email(email)).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()


async def ensure_user(db: AsyncSession, principal: Principal) -> User:
    """
    Make sure the principal has a users row so memberships can reference it.
    Identity fields are owned by the credential layer; only a missing row is created.
    """
    user = await db.get(User, principal.id)
    if user is not None:
        return user

    user = User(id=principal.id, email=User.normalize_email(principal.email), is_active=True)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # race: created concurrently
        user = await db.get(User, principal.id)
        if user is None:
            raise
    return user
