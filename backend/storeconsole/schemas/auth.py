# backend/storeconsole/schemas/auth.py
from __future__ import annotations

from pydantic import BaseModel


class MeResponse(BaseModel):
    id: str
    email: str
    role: str
    is_platform_admin: bool
