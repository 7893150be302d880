"""
Exception handlers: render gate outcomes and store faults with the same
{"detail": {"code", "message"}} body the routes use for HTTPException.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storeconsole.access.errors import AccessError
from storeconsole.access.repository import StoreError

logger = logging.getLogger(__name__)


def error_body(code: str, message: str) -> dict:
    return {"detail": {"code": code, "message": message}}


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("internal_error", "Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
