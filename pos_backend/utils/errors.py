"""
Error bodies returned to the POS: a human message always, the underlying
detail only outside production.
"""
from typing import Any, Optional

from fastapi import HTTPException

from pos_backend.utils.config import settings
from pos_backend.utils.http_retry import error_detail


def error_body(message: str, exc: Optional[BaseException] = None, **extra: Any) -> dict:
    body = {"success": False, "message": message, **extra}
    if exc is not None and not settings.is_production:
        body["error"] = error_detail(exc)
    return body


class ApiError(HTTPException):
    """HTTPException whose `detail` is already a structured error body."""

    def __init__(self, status_code: int, message: str, exc: Optional[BaseException] = None, **extra: Any):
        super().__init__(status_code=status_code, detail=error_body(message, exc, **extra))
