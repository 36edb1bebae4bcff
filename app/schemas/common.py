"""
Error envelope returned by every route:

    {"code": "INVALID_RULE_CONFIG", "message": "...", "details": {...}}
"""
from typing import Any, Optional
from pydantic import BaseModel


class FieldError(BaseModel):
    """One field-level request validation problem."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ValidationErrors(BaseModel):
    errors: list[FieldError]


class ValidationErrorResponse(ErrorResponse):
    """422 body for malformed requests (code is always VALIDATION_ERROR)."""
    details: ValidationErrors
