"""Page/limit pagination for list endpoints.

Every paged endpoint answers with the same envelope:
    {"data": [...], "meta": {"total", "page", "limit", "totalPages"}}
where totalPages = ceil(total / limit).
"""

import math

from fastapi import Query

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def page_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """Run a count and a sliced fetch for one page of an ORM query."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, page_meta(total, page, limit)


def envelope(data: list, meta: dict, **extra) -> dict:
    return {**extra, "data": data, "meta": meta}


class PageParams:
    """Dependency bundling the page and limit query parameters."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    ):
        self.page = page
        self.limit = limit


class WidePageParams(PageParams):
    """Same as PageParams with the larger default used by catalog listings."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
    ):
        super().__init__(page, limit)
