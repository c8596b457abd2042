from fastapi import APIRouter, Depends

from config.settings import settings
from database.data_client import DataClient
from dependencies.security import ROLE_HOME, RedirectRequired, resolve_role
from dependencies.session import get_data_client, get_session_token

router = APIRouter(tags=["Pages"])


@router.get("/")
def root():
    return {"success": True, "data": {"page": "landing", "title": settings.APP_TITLE, "login": "/login"}}


# ✅ already signed in -> straight to the role home
@router.get("/login")
async def login_page(token=Depends(get_session_token), client: DataClient = Depends(get_data_client)):
    if token:
        role = await resolve_role(client)
        if role is not None:
            raise RedirectRequired(ROLE_HOME[role])
    return {"success": True, "data": {"page": "login", "action": "/api/auth/login"}}
