"""RFC 7807 Problem Details rendering for domain and request-validation errors."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .domain_errors import DomainError

PROBLEM_TYPE_BASE = "https://api.carpet-erp.local/problems"
PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem(
    *,
    code: str,
    status: int,
    detail: str,
    details: Optional[Any] = None,
    instance: Optional[str] = None,
) -> JSONResponse:
    try:
        title = HTTPStatus(status).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": f"{PROBLEM_TYPE_BASE}/{code.lower()}",
        "title": title,
        "status": status,
        "detail": detail,
        "code": code,
    }
    if instance is not None:
        payload["instance"] = instance
    if details is not None:
        payload["details"] = jsonable_encoder(details)

    return JSONResponse(status_code=status, content=payload, media_type=PROBLEM_MEDIA_TYPE)


def build_problem_details_response(exc: DomainError, *, instance: Optional[str] = None) -> JSONResponse:
    """Render a DomainError with its stable code; `details` is omitted when empty."""
    return _problem(
        code=exc.code,
        status=exc.http_status,
        detail=exc.message,
        details=exc.details,
        instance=instance,
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return build_problem_details_response(exc, instance=request.url.path)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads (e.g. an unknown step command kind) as 422 problem details."""
    return _problem(
        code="REQUEST_VALIDATION_FAILED",
        status=422,
        detail="Request payload failed validation",
        details={"errors": exc.errors()},
        instance=request.url.path,
    )
