import uuid
from typing import Any

from fastapi import Request


def _meta(request: Request) -> dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", None) or str(uuid.uuid4()),
        "company_id": getattr(request.state, "company_id", None),
    }


def envelope(request: Request, data: Any, error: dict | None = None) -> dict:
    return {"data": data, "meta": _meta(request), "error": error}


def exception_envelope(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    details: dict | None = None,
) -> dict:
    return {
        "success": False,
        "errors": [{"code": code, "message": message, "details": details or {}}],
        "meta": {**_meta(request), "status_code": status_code},
    }
