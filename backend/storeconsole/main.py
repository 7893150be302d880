import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storeconsole.core.config import settings
import storeconsole.models  # noqa: F401  # force model registration

from storeconsole.api.errors import register_exception_handlers
from storeconsole.api.v1.auth import router as auth_router
from storeconsole.api.v1.stores import router as stores_router
from storeconsole.api.v1.store_users import router as store_users_router


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_application() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Store Console API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            # Local development (Vite frontend)
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "store-console"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(stores_router, prefix="/api/v1")
    app.include_router(store_users_router, prefix="/api/v1")

    return app


app = create_application()
