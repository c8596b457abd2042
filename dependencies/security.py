import logging
from enum import IntEnum
from typing import Optional

from fastapi import Depends

from database.data_client import DataClient, DataClientError
from dependencies.session import get_data_client, get_session_token

logger = logging.getLogger(__name__)


class Role(IntEnum):
    ADMIN = 1
    TEACHER = 2
    STUDENT = 3
    EXECUTIVE = 4


# ✅ canonical landing route per role
ROLE_HOME = {
    Role.ADMIN: "/admin",
    Role.TEACHER: "/dashboard-teacher",
    Role.STUDENT: "/dashboard",
    Role.EXECUTIVE: "/dashboard-executive",
}

LOGIN_PATH = "/login"


class RedirectRequired(Exception):
    """Raised by guards; middlewares/error_handler.py turns it into a redirect"""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


async def resolve_role(client: DataClient) -> Optional[Role]:
    """
    Role of the identity behind the session header.
    Not-authenticated and call failure both come back as None.
    """
    try:
        role_id = await client.rpc("get_current_role_id")
    except DataClientError as e:
        logger.warning(f"role resolution failed: {e.message}")
        return None
    try:
        return Role(int(role_id))
    except (TypeError, ValueError):
        return None


async def resolve_identity(client: DataClient) -> Optional[int]:
    """Internal numeric id of the current identity (RPC get_my_db_id)"""
    try:
        db_id = await client.rpc("get_my_db_id")
    except DataClientError as e:
        logger.warning(f"identity lookup failed: {e.message}")
        return None
    if not db_id:
        return None
    try:
        return int(db_id)
    except (TypeError, ValueError):
        logger.warning(f"identity lookup returned a non-numeric id: {db_id!r}")
        return None


def redirect_target(token: Optional[str], role: Optional[Role], area: Optional[Role]) -> Optional[str]:
    """
    Single routing rule:
    unauthenticated -> /login, role mismatch -> role home, match -> None (render).
    area=None accepts any resolved role.
    """
    if not token or role is None:
        return LOGIN_PATH
    if area is not None and role != area:
        return ROLE_HOME[role]
    return None


class RequireArea:
    """Dependency guarding one role area (admin / teacher / student / executive)"""

    def __init__(self, area: Optional[Role]):
        self.area = area

    async def __call__(
        self,
        token: Optional[str] = Depends(get_session_token),
        client: DataClient = Depends(get_data_client),
    ) -> Role:
        role = await resolve_role(client) if token else None
        target = redirect_target(token, role, self.area)
        if target:
            raise RedirectRequired(target)
        return role


# print views skip the role-mismatch redirect but still need a live session
RequireSession = RequireArea(None)
