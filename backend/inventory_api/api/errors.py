"""
예외 → HTTP 응답 매핑
- 도메인 예외는 {"status": "error", "code", "message"} 봉투로 변환
- 요청 검증 실패는 422, DB 장애는 503
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from inventory_api.exceptions import (
    ConflictError,
    InsufficientQuantityError,
    InvalidRequestError,
    InventoryError,
    NegativeQuantityError,
    NotFoundError,
)
from inventory_api.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[InventoryError], int]] = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (InsufficientQuantityError, 422),
    (NegativeQuantityError, 422),
    (InvalidRequestError, 422),
]


def status_for(exc: InventoryError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_body(code: str, message: str, errors: list | None = None) -> dict:
    return ErrorResponse(code=code, message=message, errors=errors).model_dump(exclude_none=True)


async def inventory_error_handler(request: Request, exc: InventoryError):
    status_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} → {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=_error_body(exc.code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_ERROR", "입력값이 올바르지 않습니다", errors),
    )


async def operational_error_handler(request: Request, exc: OperationalError):
    logger.error(f"DB 장애 ({request.method} {request.url.path}): {exc}")
    return JSONResponse(
        status_code=503,
        content=_error_body("DATABASE_UNAVAILABLE", "데이터베이스를 사용할 수 없습니다. 잠시 후 다시 시도하세요."),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
