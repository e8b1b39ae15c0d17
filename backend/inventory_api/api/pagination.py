"""
페이지네이션 헬퍼 — ?page=&per_page= 를 offset/limit으로 변환
"""

import math

from fastapi import Query as QueryParam
from sqlalchemy.orm import Query

from inventory_api.config import settings
from inventory_api.schemas.common import Pagination


class PageParams:
    def __init__(
        self,
        page: int = QueryParam(1, ge=1, description="페이지 번호 (1부터)"),
        per_page: int = QueryParam(
            settings.DEFAULT_PER_PAGE, ge=1, le=settings.MAX_PER_PAGE, description="페이지당 건수",
        ),
    ):
        self.page = page
        self.per_page = per_page

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def paginate(query: Query, params: PageParams) -> tuple[list, Pagination]:
    """전체 건수와 현재 페이지 행을 함께 반환"""
    total = query.order_by(None).count()
    rows = query.offset(params.offset).limit(params.per_page).all()
    pagination = Pagination(
        total=total,
        per_page=params.per_page,
        current_page=params.page,
        last_page=max(1, math.ceil(total / params.per_page)),
    )
    return rows, pagination
