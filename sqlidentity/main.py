# sqlidentity/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sqlidentity.api.admin import router as admin_router
from sqlidentity.api.session import router as session_router
from sqlidentity.core.config import Settings, settings
from sqlidentity.core.errors import ConnectionFailure, TokenGenerationExhausted
from sqlidentity.db.session import engine, store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === STARTUP ===
    logging.getLogger("sqlidentity").setLevel(settings.log_level.upper())
    if settings.create_schema:
        async with engine.begin() as conn:
            await store.create_schema(conn)
    logger.info("Identity store ready (backend=%s)", store.backend)
    yield
    # === SHUTDOWN ===
    await engine.dispose()


async def connection_failure_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database unavailable during %s: %s", exc.operation, exc.message)
    return JSONResponse(status_code=503, content={"detail": "Database unavailable"})


async def token_exhausted_handler(request: Request, exc: TokenGenerationExhausted):
    return JSONResponse(status_code=500, content={"detail": "Could not issue session token"})


def root():
    return {"ok": True}


def create_app(cfg: Settings = settings) -> FastAPI:
    app = FastAPI(title="sqlidentity", lifespan=lifespan)

    app.include_router(session_router, tags=["session"])
    if cfg.admin_routes:
        app.include_router(admin_router, prefix="/identities", tags=["identities"])

    app.add_exception_handler(ConnectionFailure, connection_failure_handler)
    app.add_exception_handler(TokenGenerationExhausted, token_exhausted_handler)
    app.add_api_route("/", root, methods=["GET"])
    return app


app = create_app()
