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
from src.tl_analysis.api.router import router as analysis_router
from src.tl_balance.api.router import router as balance_router
from src.tl_common.database import engine
from src.tl_common.errors import AppError, MeterReadingRejectedError
from src.tl_common.response import error_response
from src.tl_cost.api.router import router as cost_router
from src.tl_gateway.middleware.request_log import RequestLogMiddleware
from src.tl_meter.api.router import router as meter_router
from src.tl_receipt.api.router import router as receipt_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the DB connection. Shutdown: dispose the pool."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    data = {"errors": exc.errors} if isinstance(exc, MeterReadingRejectedError) else None
    resp = error_response(exc.code, exc.message, data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(cost_router, prefix="/api/v1")
app.include_router(balance_router, prefix="/api/v1")
app.include_router(meter_router, prefix="/api/v1")
app.include_router(receipt_router, prefix="/api/v1")
app.include_router(analysis_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
