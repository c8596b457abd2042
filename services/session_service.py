import logging
from typing import Any, Dict, Optional

from database.data_client import DataClient, DataClientError
from dependencies.security import Role
from schemas.common import HeaderUser

logger = logging.getLogger(__name__)

# role -> (profile table, name column, display id column, fixed display id, role key, label)
_PROFILES = {
    Role.STUDENT: ("students", "student_name", "student_id", "", "student", "นักศึกษา"),
    Role.TEACHER: ("teachers", "teacher_name", None, "", "teacher", "อาจารย์"),
    Role.ADMIN: ("admins", "admin_name", None, "ADMIN", "admin", "ผู้ดูแลระบบ"),
    Role.EXECUTIVE: ("executives", "executive_name", None, "EXEC", "executive", "ผู้บริหาร"),
}


async def end_session(client: DataClient, token: Optional[str]) -> None:
    """
    Best-effort removal of the backend session row.
    Failures are logged; the caller drops the cookie regardless.
    """
    if not token:
        return
    try:
        await client.delete("sessions", {"session_token": token})
    except DataClientError as e:
        logger.error(f"Error deleting session: {e.message}")


async def build_header_user(client: DataClient, role: Role) -> Optional[HeaderUser]:
    """Profile row of the signed-in user (RLS returns only their own row)"""
    table, name_col, id_col, fixed_id, role_key, label = _PROFILES[role]
    columns = ", ".join(c for c in ("id", name_col, id_col) if c)
    try:
        row = await client.select_one(table, columns)
    except DataClientError as e:
        logger.error(f"Error fetching user profile for header: {e.message}")
        return None
    if not row:
        return None

    display_id = str(row.get(id_col) or "") if id_col else fixed_id
    name = row.get(name_col) or ("Admin" if role == Role.ADMIN else "")
    return HeaderUser(id=display_id, name=name, type=label, role=role_key)


async def page_payload(client: DataClient, role: Role, data: Any) -> Dict[str, Any]:
    """Page data plus the header chrome"""
    user = await build_header_user(client, role)
    return {
        "success": True,
        "user": user.model_dump() if user else None,
        "data": data,
    }
