from fastapi import APIRouter

from config.settings import settings

router = APIRouter(prefix="/meta", tags=["Meta"])


@router.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV, "version": settings.APP_VERSION}


@router.get("/limits")
def limits():
    return {
        "page_size_default": 10,
        "page_size_max": 100,
        "session_max_age": settings.SESSION_MAX_AGE,
    }
