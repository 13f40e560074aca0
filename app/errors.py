"""
API error type and its JSON rendering: ``{"error": ..., "details": ...}``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, details: Optional[Any] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    @classmethod
    def from_exception(cls, error: str, exc: BaseException, status_code: int = 500) -> "ApiError":
        return cls(status_code, error, details=str(exc) or type(exc).__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %d %s (%s)", request.method, request.url.path,
                         exc.status_code, exc.error, exc.details)
        body = {"error": exc.error}
        if exc.details is not None:
            body["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=body)
