from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from database.data_client import DataClient
from dependencies.security import ROLE_HOME, RedirectRequired, RequireArea, RequireSession, Role, resolve_identity
from dependencies.session import get_data_client
from services import teacher_service
from services.errors import ServiceError
from services.overview_service import teacher_report
from services.print_service import print_service
from services.session_service import page_payload

router = APIRouter(prefix="/dashboard-teacher", tags=["Teacher"])

require_teacher = RequireArea(Role.TEACHER)


@router.get("")
async def teacher_dashboard(role: Role = Depends(require_teacher), client: DataClient = Depends(get_data_client)):
    return await page_payload(client, role, await teacher_service.load_teacher_dashboard(client))


@router.get("/advisory-class")
async def advisory_class(
    room_id: Optional[int] = Query(None),
    role: Role = Depends(require_teacher),
    client: DataClient = Depends(get_data_client),
):
    return await page_payload(client, role, await teacher_service.load_advisory_class(client, room_id))


@router.get("/assessment-status")
async def assessment_status(
    round_id: Optional[int] = Query(None),
    room_id: Optional[int] = Query(None),
    role: Role = Depends(require_teacher),
    client: DataClient = Depends(get_data_client),
):
    data = await teacher_service.load_assessment_status(client, round_id, room_id)
    return await page_payload(client, role, data)


# ✅ print view: no chrome; only the teacher's own report
@router.get("/individual/print", response_class=HTMLResponse)
async def individual_print(
    round_id: Optional[int] = Query(None),
    role: Role = Depends(RequireSession),
    client: DataClient = Depends(get_data_client),
):
    if role != Role.TEACHER:
        raise RedirectRequired(ROLE_HOME[role])
    teacher_id = await resolve_identity(client)
    if not teacher_id:
        raise ServiceError(404, "ไม่พบข้อมูลผู้ใช้งาน")
    report = await teacher_report(client, teacher_id, round_id)
    return HTMLResponse(print_service.individual_report(report))
