from typing import AsyncIterator, Optional

from fastapi import Depends, Request

from config.settings import settings
from database.data_client import DataClient, make_client


def get_session_token(request: Request) -> Optional[str]:
    """Session token from the single session cookie (no shape/expiry checks)"""
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


async def get_data_client(token: Optional[str] = Depends(get_session_token)) -> AsyncIterator[DataClient]:
    client = make_client(token)
    try:
        yield client
    finally:
        await client.aclose()


async def get_anon_client() -> AsyncIterator[DataClient]:
    # login must never forward a stale cookie
    client = make_client(None)
    try:
        yield client
    finally:
        await client.aclose()
