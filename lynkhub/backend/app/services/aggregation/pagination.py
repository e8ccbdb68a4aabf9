"""
Page/limit windowing over ordered aggregate selects.

``page`` and ``limit`` are 1-based. Callers that require them pass
``required=True`` and get InvalidArgument for anything missing or
non-positive; other callers fall back to the configured defaults.
"""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import InvalidArgument

settings = get_settings()


def _coerce_positive(value: Any, name: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be a positive integer")
    if number < 1:
        raise InvalidArgument(f"{name} must be a positive integer")
    return number


def coerce_page_args(page: Any = None, limit: Any = None, required: bool = False) -> Tuple[int, int]:
    """Validate page/limit, returning ``(page, limit)``."""
    page_num = _coerce_positive(page, "page")
    limit_num = _coerce_positive(limit, "limit")
    if required and (page_num is None or limit_num is None):
        raise InvalidArgument("page and limit are required")
    page_num = page_num or settings.default_page
    limit_num = min(limit_num or settings.default_page_size, settings.max_page_size)
    return page_num, limit_num


def page_envelope(items: List[Any], total_items: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "items": items,
        "total_items": total_items,
        "total_pages": math.ceil(total_items / limit) if limit else 0,
        "current_page": page,
        "limit": limit,
    }


async def paginate(
    db: AsyncSession,
    stmt: Select,
    page: int,
    limit: int,
    transform: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> Dict[str, Any]:
    """Run ``stmt`` for one page and count the whole result set."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total_items = await db.scalar(count_stmt) or 0

    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    rows = [dict(row) for row in result.mappings().all()]
    items = [transform(row) for row in rows] if transform else rows

    return page_envelope(items, total_items, page, limit)
