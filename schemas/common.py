"""
schemas/common.py

- Shared schemas used across routers (pydantic v2)
  1) error envelope: ErrorDetail, ErrorResponse
  2) pagination: Pagination, MetaInfo, make_meta()
  3) page chrome: HeaderUser
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) Error envelope
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit of an error: code + message"""
    code: str = Field(..., description="error code (e.g. INTERNAL_ERROR, UPSTREAM_ERROR)")
    message: str = Field(..., description="human readable message")

class ErrorResponse(BaseModel):
    """Body returned by the global error handlers"""
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="response time (UTC)"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) Pagination
# =========================================================

class Pagination(BaseModel):
    """
    Paging params for list endpoints
    - page: starts at 1
    - size: 1..100 (user-setting table offers 10/20/50/100)
    """
    page: int = Field(1, ge=1, description="current page (1-based)")
    size: int = Field(10, ge=1, le=100, description="rows per page")

    model_config = ConfigDict(extra="ignore")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


class MetaInfo(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    """
    Paging meta
    - pages is at least 1 even when total is 0
    """
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)


# =========================================================
# 3) Page chrome
# =========================================================

class HeaderUser(BaseModel):
    """Who is signed in, as shown in the page header"""
    id: str = ""
    name: str
    type: str = Field(..., description="localized role label")
    role: str = Field(..., description="admin | teacher | student | executive")
