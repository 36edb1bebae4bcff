"""
Custom exception hierarchy for the goal evaluation service.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from app.schemas.common import FieldError, ValidationErrorResponse, ValidationErrors

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class GoalEngineException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class RuleConfigError(GoalEngineException):
    """A stored or submitted rule_config does not match its rule_type."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_RULE_CONFIG"

    def __init__(self, message: str, rule_type: str | None = None):
        super().__init__(
            message=message,
            details={"rule_type": rule_type} if rule_type else {},
        )


class UnsupportedRuleTypeError(RuleConfigError):
    code = "UNSUPPORTED_RULE_TYPE"

    def __init__(self, rule_type: str):
        super().__init__(f"Unsupported rule type: {rule_type}", rule_type=rule_type)


class ShortSequenceError(RuleConfigError):
    """A sequence rule names fewer than two events."""

    def __init__(self, rule_type: str = "sequence"):
        super().__init__("Sequence requires at least 2 events", rule_type=rule_type)


class EmptyHypotheticalSetError(GoalEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "EMPTY_HYPOTHETICAL_SET"

    def __init__(self):
        super().__init__(message="hypothetical_events must contain at least one event.")


class TooManyHypotheticalEventsError(GoalEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "TOO_MANY_HYPOTHETICAL_EVENTS"

    def __init__(self, max_items: int, received: int):
        super().__init__(
            message=f"What-if accepts at most {max_items} events. Received {received}.",
            details={"max_items": max_items, "received": received},
        )


class UpstreamFetchError(GoalEngineException):
    """Rules or events could not be read; the evaluation pass was aborted."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "UPSTREAM_FETCH_FAILED"

    def __init__(self, source: str, reason: str):
        super().__init__(
            message=f"Failed to fetch {source}: {reason}",
            details={"source": source},
        )


class EvaluationPersistError(GoalEngineException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "EVALUATION_PERSIST_FAILED"

    def __init__(self, reason: str):
        super().__init__(message=f"Failed to persist evaluation pass: {reason}")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def goal_engine_exception_handler(
    request: Request, exc: GoalEngineException
) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body"),
            message=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]
    body = ValidationErrorResponse(
        code="VALIDATION_ERROR",
        message="Request validation failed.",
        details=ValidationErrors(errors=field_errors),
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
