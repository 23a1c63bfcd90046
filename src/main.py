"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.sx_account.api.router import router as account_router
from src.sx_admin.api.router import router as admin_router
from src.sx_clearing.api.trades_router import router as trades_router
from src.sx_common.database import engine
from src.sx_common.errors import AppError
from src.sx_common.redis_client import close_redis, get_redis
from src.sx_common.response import error_response
from src.sx_game.api.router import router as game_router
from src.sx_gateway.middleware.request_log import RequestLogMiddleware
from src.sx_market.api.router import router as market_router
from src.sx_notification.api.router import router as notification_router
from src.sx_order.api.router import router as order_router
from src.sx_secondary.api.router import router as secondary_router
from src.sx_venture.api.router import router as venture_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(game_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(venture_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(secondary_router, prefix="/api/v1")
app.include_router(notification_router, prefix="/api/v1")
app.include_router(trades_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
