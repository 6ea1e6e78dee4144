"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.tr_account.api.router import router as account_router
from src.tr_common.database import engine
from src.tr_common.errors import AppError, InternalError, StorageError
from src.tr_common.http_client import close_http_client
from src.tr_common.redis_client import close_redis, get_redis
from src.tr_common.response import ApiResponse, error_response
from src.tr_gateway.api.router import router as auth_router
from src.tr_gateway.middleware.rate_limit import RateLimitMiddleware
from src.tr_gateway.middleware.request_log import RequestLogMiddleware
from src.tr_referral.api.router import router as referral_router
from src.tr_rewards.api.router import router as rewards_router
from src.tr_tasks.api.router import router as tasks_router
from src.tr_trading.api.router import router as trading_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tr.app")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    logger.info("%s started", settings.APP_NAME)
    yield
    await close_http_client()
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=VERSION,
    lifespan=lifespan,
)

# Last added runs first: request ids exist before the rate limiter answers.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


def _envelope(request: Request, resp: ApiResponse) -> JSONResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=200, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info("[%s] %s → %d %s", request.method, request.url.path, exc.code, exc.message)
    return _envelope(request, error_response(exc.code, exc.message, exc.retryable))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _envelope(request, error_response(2001, message))


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    err = StorageError()
    return _envelope(request, error_response(err.code, err.message, err.retryable))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    return _envelope(request, error_response(err.code, err.message, err.retryable))


app.include_router(auth_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(trading_router, prefix="/api/v1")
app.include_router(rewards_router, prefix="/api/v1")
app.include_router(referral_router, prefix="/api/v1")
app.include_router(tasks_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}
