# backend/app/domain/pagination.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(page: Any = 1, limit: Any = 10, *, max_limit: int = 200) -> PageParams:
    try:
        p = int(page)
    except (TypeError, ValueError):
        p = 1
    try:
        n = int(limit)
    except (TypeError, ValueError):
        n = 10
    return PageParams(page=max(1, p), limit=min(max(1, n), max_limit))


def order_clause(sort_by: str | None, sort_order: str | None, allowed: Mapping[str, Any], default: str):
    """
    Maps a caller-supplied sort key onto a known column.
    Unknown keys fall back to the default column, never to raw SQL.
    """
    col = allowed.get((sort_by or "").strip()) or allowed[default]
    return asc(col) if (sort_order or "").strip().upper() == "ASC" else desc(col)


def paginate(db: Session, stmt: Select, params: PageParams) -> tuple[list, int]:
    total = int(db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0)
    rows = list(db.scalars(stmt.limit(params.limit).offset(params.offset)).all())
    return rows, total


def page_meta(total: int, params: PageParams) -> dict[str, int]:
    return {
        "totalPages": int(math.ceil(total / params.limit)) if params.limit else 0,
        "currentPage": params.page,
    }
