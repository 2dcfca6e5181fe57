"""Flow session IDs on log records, for tracing one checkout across modules.

A BookingWorkflow owns a session id. While it runs a step, every record
from the workflow, engine, ledger and lock manager loggers carries that
id, so one user's lock grants, conflicts and commits can be pulled out of
interleaved output from many concurrent flows.

Usage:
    from slotbook.logging_context import get_session_logger, session_scope

    logger = get_session_logger(__name__)
    with session_scope("FLOW-abc123"):
        logger.info("Slot locked")  # record.session_id == "FLOW-abc123"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_SESSION = "NO_SESSION"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def set_session_id(session_id: str) -> None:
    """Set the session ID for the current context until changed."""
    _session_id.set(session_id)


def get_session_id() -> str:
    return _session_id.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[str]:
    """Tag records with ``session_id`` inside the block, then restore the outer id."""
    token = _session_id.set(session_id)
    try:
        yield session_id
    finally:
        _session_id.reset(token)


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    Records logged outside any flow get ``NO_SESSION``, so formatters can
    always include ``%(session_id)s``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
