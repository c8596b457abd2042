from fastapi import APIRouter, Depends, Query

from database.data_client import DataClient
from dependencies.security import RequireArea, Role
from dependencies.session import get_data_client
from schemas.assessments import AnswerSubmission
from services import student_service
from services.session_service import page_payload

router = APIRouter(prefix="/dashboard", tags=["Student"])

require_student = RequireArea(Role.STUDENT)


# ==========================================================
# [Page] student home
# ==========================================================

@router.get("")
async def student_dashboard(role: Role = Depends(require_student), client: DataClient = Depends(get_data_client)):
    return await page_payload(client, role, await student_service.load_dashboard(client))


# ==========================================================
# [Page] advisor assessment
# ==========================================================

@router.get("/assessment-advisor")
async def advisor_rounds(role: Role = Depends(require_student), client: DataClient = Depends(get_data_client)):
    return await page_payload(client, role, await student_service.load_advisor_page(client))


@router.get("/assessment-advisor/{around_id}")
async def advisor_form(
    around_id: int,
    teacher_id: int = Query(...),
    role: Role = Depends(require_student),
    client: DataClient = Depends(get_data_client),
):
    return await page_payload(client, role, await student_service.load_form(client, around_id, teacher_id))


# ✅ [SUBMIT] one answer row per question
@router.post("/assessment-advisor/{around_id}")
async def submit_assessment(
    around_id: int,
    body: AnswerSubmission,
    role: Role = Depends(require_student),
    client: DataClient = Depends(get_data_client),
):
    inserted = await student_service.submit_answers(client, around_id, body)
    return {
        "success": True,
        "data": {"around_id": around_id, "teacher_id": body.teacher_id, "inserted": inserted},
        "message": "บันทึกผลการประเมินเรียบร้อยแล้ว",
    }


# ==========================================================
# [Page] history
# ==========================================================

@router.get("/history")
async def assessment_history(role: Role = Depends(require_student), client: DataClient = Depends(get_data_client)):
    return await page_payload(client, role, await student_service.load_history(client))
