"""tl_meter REST API — meter reading validation and recording, JWT required."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_common.database import get_db_session
from src.tl_common.response import ApiResponse, success_response
from src.tl_gateway.auth.dependencies import get_current_user_id
from src.tl_meter.application.schemas import ContributionReadingRequest, MeterReadingRequest
from src.tl_meter.application.service import MeterReadingService

router = APIRouter(prefix="/meter-readings", tags=["meter-readings"])

_service = MeterReadingService()


@router.post("/validate")
async def validate_meter_reading(
    body: MeterReadingRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.validate_reading(db, user_id, body.reading, body.reading_date)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=201)
async def record_meter_reading(
    body: MeterReadingRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_reading(
        db, user_id, body.reading, body.reading_date, body.notes
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/suggestion")
async def get_reading_suggestion(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    reading_date: date = Query(..., description="Day the reading will be taken"),
) -> ApiResponse:
    data = await _service.suggest(db, reading_date)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/validate-contribution")
async def validate_contribution_reading(
    body: ContributionReadingRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.validate_contribution(db, body.purchase_id, body.meter_reading)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
