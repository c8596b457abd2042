from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# HTTP client debug logs off
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import (
    admin, auth, avg, dashboard, dashboard_executive,
    dashboard_teacher, meta, pages,
)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (credentials on: the session travels as a cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency (X-Latency-Ms response header)
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (redirects + consistent JSON error envelope)
add_error_handlers(app)

# ✅ public pages + API
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(avg.router)
app.include_router(meta.router)

# ✅ role areas
app.include_router(dashboard.router)
app.include_router(dashboard_teacher.router)
app.include_router(admin.router)
app.include_router(dashboard_executive.router)
