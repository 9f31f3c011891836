"""Shared pagination helpers for list endpoints"""

import math

from pydantic import BaseModel
from sqlalchemy.orm import Query


class Pagination(BaseModel):
    total: int
    page: int
    pageSize: int
    totalPages: int


def build_pagination(total: int, page: int, page_size: int) -> Pagination:
    return Pagination(
        total=total,
        page=page,
        pageSize=page_size,
        totalPages=math.ceil(total / page_size) if page_size else 0,
    )


def paginate(query: Query, page: int, page_size: int) -> tuple[list, Pagination]:
    """Count the query, then fetch one page of it"""
    total = query.order_by(None).count()
    rows = query.limit(page_size).offset((page - 1) * page_size).all()
    return rows, build_pagination(total, page, page_size)
