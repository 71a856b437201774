"""tl_analysis REST API — receipt price history, JWT required."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_analysis.application.service import HistoryAnalysisService
from src.tl_common.database import get_db_session
from src.tl_common.response import ApiResponse, success_response
from src.tl_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/analysis", tags=["analysis"])

_service = HistoryAnalysisService()


@router.get("/history")
async def analyze_history(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    start: datetime | None = Query(None, description="Purchases dated on or after"),
    end: datetime | None = Query(None, description="Purchases dated on or before"),
) -> ApiResponse:
    data = await _service.analyze(db, start, end)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
