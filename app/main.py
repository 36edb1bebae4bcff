import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import (
    GoalEngineException,
    goal_engine_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.core.logging import configure_logging
from app.routers import events, goals, health, rules

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Goal Evaluator API",
    description=(
        "**Temporal goal evaluation engine**\n\n"
        "Matches timestamped life events against sequence and count goal rules "
        "inside rolling windows, classifies each goal as on_track / at_risk / "
        "off_track / completed, keeps an audit trail of decision impacts and "
        "answers what-if questions without persisting simulated state.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most specific first.
app.add_exception_handler(GoalEngineException, goal_engine_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.router)
app.include_router(rules.router)
app.include_router(events.router)
app.include_router(goals.router)
app.include_router(goals.action_router)

logger.info("Goal evaluator API configured (env=%s)", settings.APP_ENV)
