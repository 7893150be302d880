from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from storeconsole.core.roles import MembershipStatus, Role


class StoreMemberOut(BaseModel):
    store_id: UUID
    user_id: UUID
    email: str
    name: Optional[str] = None
    role: str
    status: str
    is_primary: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipOut(BaseModel):
    store_id: UUID
    user_id: UUID
    role: str
    status: str
    is_primary: bool

    model_config = {"from_attributes": True}


class StoreMemberCreate(BaseModel):
    email: EmailStr
    role: Role = Role.STAFF


class StoreMemberRoleUpdate(BaseModel):
    role: Role


class StoreMemberStatusUpdate(BaseModel):
    status: MembershipStatus
