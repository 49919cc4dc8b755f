import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...errors import CreatorIQError

logger = logging.getLogger(__name__)


def _error_payload(code: str, message: str, request_id: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        }
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException and format as standard error envelope."""
    request_id = _request_id(request)
    detail = exc.detail
    headers = getattr(exc, "headers", None)
    if isinstance(detail, dict) and "error" in detail:
        error = detail["error"]
        if error.get("request_id") in (None, "", "unknown"):
            error["request_id"] = request_id
        return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=headers)
    if isinstance(detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload("HTTP_ERROR", "Request failed", request_id, detail),
            headers=headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload("HTTP_ERROR", str(detail), request_id),
        headers=headers,
    )


async def creatoriq_exception_handler(request: Request, exc: CreatorIQError) -> JSONResponse:
    """Map typed service errors onto their HTTP status and the error envelope."""
    if exc.status_code >= 500:
        logger.warning("Request failed with %s: %s", exc.code, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(exc.code, str(exc), _request_id(request), jsonable_encoder(exc.details)),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_payload(
            "VALIDATION_ERROR",
            "Request validation failed",
            _request_id(request),
            jsonable_encoder(exc.errors()),
        ),
    )
