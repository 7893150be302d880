from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, field_validator

from storeconsole.core.roles import Role


def _normalize_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = " ".join(v.strip().split())
    if not v:
        raise ValueError("Store name must not be empty")
    return v


class StoreCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    logo_url: Optional[HttpUrl] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _normalize_name(v)


class StoreUpdate(BaseModel):
    # Optional updates; send any subset
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    logo_url: Optional[HttpUrl] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_name(v)


class StoreOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MyStoreOut(StoreOut):
    role: str
    status: str
    is_primary: bool


class StoreDetailOut(StoreOut):
    # Role the caller acts under for this request
    role: Role
    override: Optional[str] = None
