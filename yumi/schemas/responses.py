"""
schemas/responses.py — Shared response models for OpenAPI documentation

Provides the pagination envelope used by every paged list endpoint
and the trivial ok response.

Called by: routers/*.py, utils/pagination.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PageMeta(BaseModel):
    total: int = 0
    page: int = 1
    limit: int = 10
    totalPages: int = 0


class PaginatedResponse(BaseModel, extra="allow"):
    data: list[dict] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)


class OkResponse(BaseModel):
    ok: bool = True
