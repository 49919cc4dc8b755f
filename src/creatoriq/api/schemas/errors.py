from pydantic import BaseModel
from typing import Optional, Any


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None
    request_id: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


# Documented error shapes shared by every route.
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid analysis type or model"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "Provider call failed or returned malformed output"},
    503: {"model": ErrorResponse, "description": "No AI provider configured"},
}
