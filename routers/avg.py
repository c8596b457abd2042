import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from database.data_client import DataClient
from dependencies.session import get_data_client, get_session_token
from schemas.avg import CalculationRequest
from services.calculation_service import run_calculations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/avg", tags=["Average"])


def _round_id(value: Any) -> Optional[int]:
    """Numeric round id; None, 0 and non-numbers count as missing"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip()) or None
    except ValueError:
        return None


def _fail(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "message": message})


async def _trigger(raw_round: Any, triggered_by: str, token: Optional[str], client: DataClient) -> JSONResponse:
    around_id = _round_id(raw_round)
    if around_id is None:
        return _fail(400, "Missing around_id")
    if not token:
        return _fail(401, "Unauthorized")

    try:
        result = await run_calculations(client, around_id, triggered_by)
    except Exception:
        logger.exception("API Error")
        return _fail(500, "Internal Server Error")
    return JSONResponse(status_code=result.status, content=result.body())


# ✅ [POST] manual recomputation
@router.post("")
async def trigger_calculation(
    request: Request,
    token=Depends(get_session_token),
    client: DataClient = Depends(get_data_client),
):
    # body is read by hand: an unreadable body is a 500 here, never a 422
    try:
        payload = await request.json()
    except ValueError:
        logger.exception("API Error: request body is not JSON")
        return _fail(500, "Internal Server Error")

    try:
        body = CalculationRequest.model_validate(payload if isinstance(payload, dict) else {})
    except ValidationError:
        return _fail(400, "Missing around_id")
    return await _trigger(body.around_id, body.triggered_by or "api_manual_trigger", token, client)


# ✅ [GET] same trigger through a query string
@router.get("")
async def trigger_calculation_get(
    around_id: Optional[str] = Query(None),
    token=Depends(get_session_token),
    client: DataClient = Depends(get_data_client),
):
    return await _trigger(around_id, "api_get_trigger", token, client)
