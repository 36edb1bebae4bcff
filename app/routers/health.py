"""
Liveness probe.

GET /health — API up and database answering a trivial query
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.base import get_db
from app.schemas.common import ErrorResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Health check",
    responses={503: {"model": ErrorResponse, "description": "Database unreachable."}},
)
def health(db: Session = Depends(get_db)):
    """
    `{"status": "ok", "db": "ok", "env": ...}` when the database answers,
    otherwise HTTP 503 with code `DB_UNREACHABLE`.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(
            status_code=503,
            content={"code": "DB_UNREACHABLE", "message": "Database is not reachable."},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
