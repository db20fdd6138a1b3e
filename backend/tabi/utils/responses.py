from __future__ import annotations

import logging
from typing import Any

from fastapi.responses import JSONResponse

# Every failure surfaces with the same status; the cause only goes to the log.
FAILURE_STATUS_CODE = 500


def success_response() -> dict[str, Any]:
    return {"success": True}


def error_response(msg: str) -> dict[str, Any]:
    return {"error": msg}


def failure_response(
    msg: str,
    exc: Exception,
    *,
    logger: logging.Logger,
) -> JSONResponse:
    """Log ``exc`` against the failed operation and return the generic body."""

    code = getattr(exc, "code", None)
    logger.error(
        "%s: %s",
        msg,
        exc,
        extra={"error_type": exc.__class__.__name__, "error_code": code},
    )
    return JSONResponse(status_code=FAILURE_STATUS_CODE, content=error_response(msg))
