import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from config.settings import settings
from database.data_client import DataClient, DataClientError
from dependencies.session import get_anon_client, get_data_client, get_session_token
from schemas.auth import LoginRequest, LoginResponse
from services.session_service import end_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

INVALID_CREDENTIALS_MESSAGE = "ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง"


def _first_row(result):
    if isinstance(result, list):
        return result[0] if result else None
    return result if isinstance(result, dict) else None


# ✅ [LOGIN] credentials -> backend session token -> cookie
@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, response: Response, client: DataClient = Depends(get_anon_client)):
    try:
        result = await client.rpc("login_user", {"_username": body.username, "_password": body.password})
    except DataClientError as e:
        logger.error(f"Login RPC Error: {e.message}")
        return JSONResponse(status_code=500, content={"message": "Database Error"})

    row = _first_row(result)
    if not row or row.get("status") == "error" or not row.get("session_token"):
        return JSONResponse(status_code=401, content={"message": INVALID_CREDENTIALS_MESSAGE})

    token = row["session_token"]
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.SECURE_COOKIES,
    )
    logger.info(f"login ok: {body.username} ({row.get('role_name')})")
    return LoginResponse(role_name=row.get("role_name") or "", token=token)


# ✅ [LOGOUT] drop the backend session (best effort) and the cookie (always)
@router.post("/logout")
async def logout(
    response: Response,
    token=Depends(get_session_token),
    client: DataClient = Depends(get_data_client),
):
    await end_session(client, token)
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True}
