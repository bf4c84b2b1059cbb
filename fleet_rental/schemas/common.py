from pydantic import BaseModel
from typing import Any


# ─── Error Body ───────────────────────────────────────────────────────────────
class ErrorBody(BaseModel):
    code: str
    details: list[dict] | None = None
    field: str | None = None


# ─── Error Response ───────────────────────────────────────────────────────────
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: ErrorBody


# ─── Helper Functions ─────────────────────────────────────────────────────────
def success_response(message: str, data: Any = None) -> dict:
    """Return a standardized success dict (used in route handlers)."""
    return {"success": True, "message": message, "data": data}


def list_response(message: str, data: list) -> dict:
    """Success dict for unpaginated lists; carries the item count."""
    return {"success": True, "message": message, "data": data, "meta": {"total": len(data)}}


def error_response(message: str, code: str, details: list | None = None, field: str | None = None) -> dict:
    """Standardized error dict (used by the exception handlers)."""
    return ErrorResponse(
        message=message,
        error=ErrorBody(code=code, details=details, field=field),
    ).model_dump()
