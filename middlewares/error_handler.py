import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from database.data_client import DataClientError
from dependencies.security import RedirectRequired
from schemas.common import ErrorDetail, ErrorResponse
from services.errors import ServiceError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "เกิดข้อผิดพลาดภายในระบบ"


def _generic(status_code: int, code: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=GENERIC_ERROR_MESSAGE))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def add_error_handlers(app: FastAPI):
    @app.exception_handler(RedirectRequired)
    async def redirect_handler(request: Request, exc: RedirectRequired):
        return RedirectResponse(url=exc.location, status_code=307)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": {"code": exc.status_code, "message": exc.message},
            },
        )

    @app.exception_handler(DataClientError)
    async def data_client_error_handler(request: Request, exc: DataClientError):
        # upstream detail stays in the log
        logger.error(f"database error on {request.method} {request.url.path}: "
                     f"{exc.message} (code={exc.code}, status={exc.status_code})")
        return _generic(502, "UPSTREAM_ERROR")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"unhandled error on {request.method} {request.url.path}")
        return _generic(500, "INTERNAL_ERROR")
