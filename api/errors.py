from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from collector.core.exceptions import CollectorError


async def collector_error_handler(request: Request, exc: CollectorError) -> JSONResponse:
    """Render a :class:`CollectorError` raised outside the event pipeline.

    Submissions never get here: the processor answers them itself with the
    ``{"status", "info"}`` shape. Operator routes use ``{"error": {...}}``.
    """

    body = {"error": {"code": exc.code, "message": exc.public_message}}
    headers = {"WWW-Authenticate": "Bearer"} if exc.status == 401 else None
    return JSONResponse(status_code=exc.status, content=body, headers=headers)
