"""tl_receipt REST API — historical receipt bulk import, JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_common.database import get_db_session
from src.tl_common.response import ApiResponse, success_response
from src.tl_gateway.auth.dependencies import get_current_user_id
from src.tl_receipt.application.schemas import BulkImportRequest
from src.tl_receipt.application.service import ReceiptImportService

router = APIRouter(prefix="/receipts", tags=["receipts"])

_service = ReceiptImportService()


@router.post("/bulk-import")
async def bulk_import_receipts(
    body: BulkImportRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.match_receipts(db, body.receipts, body.auto_import)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
