"""
Process-wide logging setup.

Called once from app.main; every module logs through
`logging.getLogger(__name__)`. Output goes to stdout so gunicorn / the
container runtime captures it.
"""
import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
