"""
Average recomputation trigger.

The three backend procedures upsert (ON CONFLICT UPDATE) their averages, so a
partially failed run is corrected simply by running again; nothing is rolled back.
"""

import asyncio
import logging

from database.data_client import DataClient, DataClientError
from dependencies.security import Role, resolve_role
from schemas.avg import CalculationResult

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Access Denied: คุณไม่มีสิทธิ์ในการสั่งคำนวณผล (Admin Only)"
DATABASE_ERROR_MESSAGE = "Database Error"
PARTIAL_FAILURE_MESSAGE = "เกิดข้อผิดพลาดในการคำนวณบางส่วน"
SUCCESS_MESSAGE = "ส่งคำสั่งคำนวณเรียบร้อยแล้ว (ตรวจสอบสถานะได้ที่ System Logs)"

# (label, procedure)
RECOMPUTE_PROCEDURES = (
    ("Teacher", "run_calculate_avg_teacher"),
    ("Major", "run_calculate_avg_major"),
    ("Faculty", "run_calculate_avg_faculty"),
)


async def is_admin(client: DataClient) -> bool:
    return await resolve_role(client) == Role.ADMIN


async def run_calculations(client: DataClient, around_id: int, triggered_by: str) -> CalculationResult:
    # admin is re-checked here even if the caller already did
    if not await is_admin(client):
        logger.warning(f"Unauthorized calculation attempt by: {triggered_by}")
        return CalculationResult(success=False, message=ACCESS_DENIED_MESSAGE, status=403)

    logger.info(f"Running calculations with around_id={around_id}, triggered_by={triggered_by}")

    # 1. anything to compute?
    try:
        answer_count = await client.count("assessment_answer", {"around_id": around_id})
    except DataClientError as e:
        logger.error(f"Count Check Error: {e.message}")
        return CalculationResult(success=False, message=DATABASE_ERROR_MESSAGE, status=500)

    if answer_count == 0:
        return CalculationResult(
            success=False,
            message=f"ไม่พบข้อมูลการประเมินในรอบ {around_id} จึงไม่มีการคำนวณ",
            status=404,
        )

    # 2. teacher / major / faculty averages in parallel
    params = {"p_around_id": around_id, "p_triggered_by": triggered_by}
    results = await asyncio.gather(
        *(client.rpc(procedure, params) for _, procedure in RECOMPUTE_PROCEDURES),
        return_exceptions=True,
    )

    errors = []
    for (label, _), result in zip(RECOMPUTE_PROCEDURES, results):
        if isinstance(result, DataClientError):
            errors.append(f"{label} Calc Error: {result.message}")
        elif isinstance(result, Exception):
            errors.append(f"{label} Calc Error: {result}")

    if errors:
        logger.error(f"Calculation Errors: {errors}")
        return CalculationResult(success=False, message=PARTIAL_FAILURE_MESSAGE, errors=errors, status=500)

    return CalculationResult(success=True, message=SUCCESS_MESSAGE, status=200)
