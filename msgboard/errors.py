# msgboard/errors.py
"""
Problem-details error responses.

Every error body has ``type``, ``title``, ``status``, ``detail`` and
``instance``, plus ``code`` and ``errors`` when known. Board errors also carry
``error`` with the same text as ``detail``, which is the only field older
frontends read.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def problem_body(
    request: Request,
    status_code: int,
    detail: str = "",
    *,
    code: Optional[str] = None,
    errors: Optional[Any] = None,
    legacy_error: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _status_title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = jsonable_encoder(errors)
    if legacy_error:
        body["error"] = legacy_error
    return body


def _from_http_detail(detail: Any) -> Dict[str, Any]:
    """Unpack the ``detail`` of an HTTPException into problem fields."""
    if isinstance(detail, dict):
        text = detail.get("message") or detail.get("detail")
        legacy = detail.get("error")
        return {
            "detail": text if isinstance(text, str) else "",
            "code": detail.get("code") if isinstance(detail.get("code"), str) else None,
            "errors": detail.get("details") or detail.get("errors"),
            "legacy_error": legacy if isinstance(legacy, str) else None,
        }
    return {"detail": "" if detail is None else str(detail)}


def register_error_handlers(app: FastAPI) -> None:
    """Install the problem-details error envelope on ``app``."""

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        body = problem_body(
            request,
            exc.status_code,
            exc.message,
            code=exc.code,
            errors=exc.details,
            legacy_error=exc.message,
        )
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        body = problem_body(request, exc.status_code, **_from_http_detail(exc.detail))
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = problem_body(
            request,
            422,
            "Request validation failed",
            code="validation_error",
            errors=exc.errors(),
        )
        return JSONResponse(body, status_code=422)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        body = problem_body(request, 500, "Internal Server Error", code="internal_server_error")
        return JSONResponse(body, status_code=500)
