"""
Logging setup for the beep.money API.

All modules log through ``logging.getLogger(__name__)``, which puts them
under the ``beep`` logger configured here. Each record carries a
``user_id`` field so that per-user work (summary requests, report jobs)
can be traced. Work not tied to a user is tagged "system".

Access tokens and magic-link tokens must never be passed to a logger.
"""

import logging
import sys
from contextvars import ContextVar

_user_context: ContextVar[str | None] = ContextVar("beep_log_user", default=None)


class UserContextFilter(logging.Filter):
    """Add the current user id to log records."""

    def filter(self, record):
        record.user_id = _user_context.get() or "system"
        return True


def set_user_context(user_id) -> None:
    """Tag subsequent log records in this task with ``user_id``."""
    _user_context.set(str(user_id) if user_id is not None else None)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the ``beep`` logger with a console handler.

    Safe to call more than once — existing handlers are replaced rather
    than duplicated.
    """
    logger = logging.getLogger("beep")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] [user:%(user_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(UserContextFilter())
    logger.addHandler(handler)
    return logger
