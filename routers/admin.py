from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import HTMLResponse

from database.data_client import DataClient
from dependencies.security import RequireArea, RequireSession, Role
from dependencies.session import get_data_client
from schemas.assessments import AssessmentIn
from schemas.common import Pagination
from services import assessment_service, overview_service, user_service
from services.errors import ServiceError
from services.print_service import print_service
from services.session_service import page_payload

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = RequireArea(Role.ADMIN)


# ==========================================================
# [Page] rounds
# ==========================================================

@router.get("")
async def admin_home(role: Role = Depends(require_admin), client: DataClient = Depends(get_data_client)):
    rounds = await assessment_service.list_rounds(client, check_start=False)
    for card in rounds:
        card["action"] = "edit" if card["is_active"] else "view"
    return await page_payload(client, role, rounds)


# ==========================================================
# [CRUD] assessment structure
# ==========================================================

@router.post("/assessments", status_code=201)
async def create_assessment(
    form: AssessmentIn,
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    around_id = await assessment_service.create_assessment(client, form)
    return {"success": True, "data": {"around_id": around_id}, "message": "สร้างแบบประเมินเรียบร้อยแล้ว"}


@router.get("/assessments/{around_id}")
async def read_assessment(
    around_id: int,
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    heads, details = await assessment_service.load_structure(client, around_id)
    if not heads and not details:
        raise ServiceError(404, f"ไม่พบแบบประเมินรอบ {around_id}")
    return await page_payload(client, role, assessment_service.structure_view(around_id, heads, details))


@router.put("/assessments/{around_id}")
async def replace_assessment(
    around_id: int,
    form: AssessmentIn,
    clear_answers: bool = Query(False),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    await assessment_service.replace_assessment(client, around_id, form, clear_answers)
    return {"success": True, "data": {"around_id": around_id}, "message": "บันทึกการแก้ไขเรียบร้อยแล้ว"}


@router.delete("/assessments/{around_id}")
async def delete_assessment(
    around_id: int,
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    await assessment_service.delete_assessment(client, around_id)
    return {"success": True, "message": "ลบแบบประเมินเรียบร้อยแล้ว"}


# ==========================================================
# [Page] overviews
# ==========================================================

@router.get("/overview/faculties")
async def faculty_overview(
    round_id: Optional[int] = Query(None),
    faculty_id: Optional[int] = Query(None),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.faculty_overview(client, round_id, faculty_id)
    return await page_payload(client, role, data)


@router.get("/overview/majors")
async def major_overview(
    round_id: Optional[int] = Query(None),
    major_id: Optional[int] = Query(None),
    faculty_id: Optional[int] = Query(None),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.major_overview(client, round_id, major_id, faculty_id)
    return await page_payload(client, role, data)


@router.get("/overview/individual")
async def individual_overview(
    round_id: Optional[int] = Query(None),
    teacher_id: Optional[int] = Query(None),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.individual_overview(client, round_id, teacher_id)
    return await page_payload(client, role, data)


# ==========================================================
# [Print] overviews (HTML, no chrome)
# ==========================================================

@router.get("/overview/print", response_class=HTMLResponse)
async def overview_print(
    round_id: Optional[int] = Query(None),
    role: Role = Depends(RequireSession),
    client: DataClient = Depends(get_data_client),
):
    faculty = await overview_service.faculty_overview(client, round_id)
    major = await overview_service.major_overview(client, faculty["around_id"])
    return HTMLResponse(print_service.admin_summary({
        "label": faculty["label"],
        "participation": faculty["participation"],
        "faculty": faculty,
        "major": major,
    }))


@router.get("/overview/faculties/print", response_class=HTMLResponse)
async def faculty_print(
    round_id: Optional[int] = Query(None),
    faculty_id: Optional[int] = Query(None),
    role: Role = Depends(RequireSession),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.faculty_overview(client, round_id, faculty_id)
    return HTMLResponse(print_service.faculty_report(data))


@router.get("/overview/majors/print", response_class=HTMLResponse)
async def major_print(
    round_id: Optional[int] = Query(None),
    major_id: Optional[int] = Query(None),
    faculty_id: Optional[int] = Query(None),
    role: Role = Depends(RequireSession),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.major_overview(client, round_id, major_id, faculty_id)
    return HTMLResponse(print_service.major_report(data))


@router.get("/overview/individual/print", response_class=HTMLResponse)
async def individual_print(
    round_id: Optional[int] = Query(None),
    teacher_id: Optional[int] = Query(None),
    role: Role = Depends(RequireSession),
    client: DataClient = Depends(get_data_client),
):
    data = await overview_service.individual_overview(client, round_id, teacher_id)
    return HTMLResponse(print_service.individual_report(data))


# ==========================================================
# [CRUD] user settings
# ==========================================================

@router.get("/user-setting/{table}")
async def list_users(
    table: str,
    paging: Pagination = Depends(),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    return await page_payload(client, role, await user_service.list_users(client, table, paging))


@router.post("/user-setting/{table}", status_code=201)
async def create_user(
    table: str,
    values: Dict[str, Any] = Body(...),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    created = await user_service.create_user(client, table, values)
    return {"success": True, "data": created, "message": "เพิ่มข้อมูลเรียบร้อยแล้ว"}


@router.put("/user-setting/{table}/{user_id}")
async def update_user(
    table: str,
    user_id: int,
    values: Dict[str, Any] = Body(...),
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    updated = await user_service.update_user(client, table, user_id, values)
    return {"success": True, "data": updated, "message": "แก้ไขข้อมูลเรียบร้อยแล้ว"}


@router.delete("/user-setting/{table}/{user_id}")
async def delete_user(
    table: str,
    user_id: int,
    role: Role = Depends(require_admin),
    client: DataClient = Depends(get_data_client),
):
    await user_service.delete_user(client, table, user_id)
    return {"success": True, "message": "ลบข้อมูลเรียบร้อยแล้ว"}
