# stockhold/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from stockhold.api.error_map import status_for
from stockhold.api.problem import make_problem
from stockhold.domain.errors import ErrorKind, InventoryError

logger = logging.getLogger("stockhold.http")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _req_ctx(req: Request) -> Dict[str, Any]:
    return {"path": getattr(req.url, "path", ""), "method": req.method}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def _inventory_exc(req: Request, exc: InventoryError):
        status_code = status_for(exc)
        ctx = _req_ctx(req)

        if exc.kind is ErrorKind.TRANSACTION:
            # 存储层细节只进日志，客户端只拿到通用信息 + trace_id
            trace_id = _new_trace_id()
            logger.error(
                "TRANSACTION_FAILED[%s]: %s context=%s", trace_id, exc, exc.context, exc_info=exc
            )
            content = make_problem(
                status_code=status_code,
                error_code=exc.code,
                message="internal storage error",
                context=ctx,
                trace_id=trace_id,
            )
            return JSONResponse(status_code=status_code, content=content)

        ctx.update({k: v for k, v in exc.context.items() if v is not None})
        content = make_problem(
            status_code=status_code,
            error_code=exc.code,
            message=exc.message,
            context=ctx,
        )
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        # 请求体 / 查询参数解析失败统一 400（422 专用于可用量不足）
        details: List[Dict[str, Any]] = []
        for e in exc.errors():
            if not isinstance(e, dict):
                continue
            loc = ".".join(str(p) for p in e.get("loc", ()))
            details.append(
                {
                    "type": "validation",
                    "path": loc,
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )

        content = make_problem(
            status_code=400,
            error_code="request_validation_error",
            message="invalid request",
            context=_req_ctx(req),
            details=details,
        )
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        status_code = int(exc.status_code)
        msg = str(exc.detail) if exc.detail is not None else "request rejected"
        content = make_problem(
            status_code=status_code,
            error_code="http_error",
            message=msg,
            context=_req_ctx(req),
        )
        return JSONResponse(status_code=status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="internal error",
            context=_req_ctx(req),
            trace_id=trace_id,
        )
        return JSONResponse(status_code=500, content=content)
