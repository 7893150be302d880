# storeconsole/access/locator.py

from __future__ import annotations

import json
from typing import Optional

from fastapi import Request

STORE_ID_HEADER = "X-Store-Id"
STORE_ID_FIELD = "store_id"

_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _clean(value: object) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


async def _body_store_id(request: Request) -> Optional[str]:
    if request.method not in _BODY_METHODS:
        return None
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        return None

    raw = await request.body()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        # Malformed bodies are reported by the route's own validation.
        return None
    if not isinstance(payload, dict):
        return None
    return _clean(payload.get(STORE_ID_FIELD))


async def locate_store_id(request: Request) -> Optional[str]:
    """
    First non-empty store id from: X-Store-Id header, ?store_id= query,
    {store_id} path parameter, JSON body field store_id.
    """
    for candidate in (
        request.headers.get(STORE_ID_HEADER),
        request.query_params.get(STORE_ID_FIELD),
        request.path_params.get(STORE_ID_FIELD),
    ):
        value = _clean(candidate)
        if value:
            return value
    return await _body_store_id(request)
