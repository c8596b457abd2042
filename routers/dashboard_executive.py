from fastapi import APIRouter, Depends

from database.data_client import DataClient
from dependencies.security import RequireArea, Role
from dependencies.session import get_data_client
from services.assessment_service import list_rounds
from services.overview_service import faculty_overview
from services.session_service import page_payload

router = APIRouter(prefix="/dashboard-executive", tags=["Executive"])

require_executive = RequireArea(Role.EXECUTIVE)


# read-only: newest round's faculty overview
@router.get("")
async def executive_dashboard(role: Role = Depends(require_executive), client: DataClient = Depends(get_data_client)):
    rounds = await list_rounds(client)
    overview = await faculty_overview(client, rounds[0]["around_id"]) if rounds else None
    return await page_payload(client, role, {"rounds": rounds, "overview": overview})
