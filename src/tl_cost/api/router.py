"""tl_cost REST API — cost summaries and contribution guidance, JWT required."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_common.database import get_db_session
from src.tl_common.response import ApiResponse, success_response
from src.tl_cost.application.service import CostAnalysisService
from src.tl_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/cost", tags=["cost"])

_service = CostAnalysisService()


@router.get("/summary")
async def get_cost_summary(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_user_summary(db, user_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/period")
async def get_period_analysis(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    start: datetime | None = Query(None, description="Purchases dated on or after"),
    end: datetime | None = Query(None, description="Purchases dated on or before"),
) -> ApiResponse:
    data = await _service.get_period_analysis(db, start, end)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/optimal-contribution")
async def get_optimal_contribution(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    purchase_id: str = Query(..., description="Purchase the tokens were drawn from"),
    tokens_consumed: float = Query(..., ge=0, description="kWh consumed"),
    include_emergency_penalty: bool = Query(True),
) -> ApiResponse:
    data = await _service.get_optimal_contribution(
        db, purchase_id, tokens_consumed, include_emergency_penalty
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/dual-currency")
async def get_dual_currency_cost(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    purchase_id: str = Query(...),
    tokens_consumed: float = Query(..., ge=0),
) -> ApiResponse:
    data = await _service.get_dual_currency_cost(db, purchase_id, tokens_consumed)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
