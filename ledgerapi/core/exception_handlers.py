"""
예외 → JSON 응답 변환

모든 오류 응답은 같은 봉투를 쓴다:
    {"success": false, "error": {"code": ..., "message": ..., "details": {...}}}

업무 오류(LedgerError 등 4xx)는 WARNING, 그 외는 ERROR + 스택 트레이스.
"""

import logging
import traceback
from typing import Any, Dict

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .exceptions import BaseAPIException, DatabaseUnavailableError, InternalServerError

logger = logging.getLogger("ledgerapi.errors")


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "url": str(request.url),
        "client": client,
    }


def _prefix(request: Request, kind: str, status_code: int) -> str:
    ctx = _request_context(request)
    return f"[{kind}] {ctx['method']} {ctx['url']} from {ctx['client']} -> {status_code}"


def _envelope(code: str, message: str, details: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details},
    }


def _respond(exc: BaseAPIException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.detail))


async def handle_base_api_exception(request, exc: BaseAPIException):
    message = f"{_prefix(request, exc.error_code, exc.status_code)}: {exc.message} {exc.details}"
    if exc.status_code >= 500:
        logger.error(message)
    else:
        logger.warning(message)
    return _respond(exc)


async def handle_http_exception(request, exc):
    message = f"{_prefix(request, 'HTTPException', exc.status_code)}: {exc.detail}"
    if exc.status_code >= 500:
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{message}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(message)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = _envelope("HTTP_ERROR", str(exc.detail), {})
    return JSONResponse(status_code=exc.status_code, content=content)


async def handle_validation_error(request, exc):
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"{_prefix(request, 'ValidationError', 422)}: {errors}")
    return JSONResponse(
        status_code=422,
        content=_envelope("VALIDATION_001", "Validation failed", {"errors": errors}),
    )


async def handle_database_error(request, exc):
    """연결 끊김/타임아웃 - 요청의 트랜잭션은 get_db 에서 롤백된다"""
    logger.error(f"{_prefix(request, 'DatabaseError', 503)}: {type(exc).__name__}: {exc}")
    return _respond(DatabaseUnavailableError())


async def handle_unexpected_error(request, exc):
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"{_prefix(request, 'Unhandled Error', 500)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {exc}\n\n"
        f"Full Stack Trace:\n{tb_str}"
    )
    return _respond(InternalServerError())
