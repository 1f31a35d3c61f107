"""Correlation context for tracing one voice-agent request across modules.

Every availability check or booking runs inside a ``call_scope`` so that
log lines from the fetcher, planner, and orchestrator can be tied back to
the caller and the location they were booking against.

Usage:
    from booking_orchestrator.logging_context import call_scope, get_call_logger

    logger = get_call_logger(__name__)
    with call_scope("CALL-abc123", location_id="loc_1"):
        logger.info("Searching slots")  # record.call_id == "CALL-abc123"
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_call_id: ContextVar[str] = ContextVar("call_id", default="NO_CALL_ID")
_location_id: ContextVar[str] = ContextVar("location_id", default="-")


def new_call_id() -> str:
    """Generate a short correlation ID for a request that arrived without one."""
    return f"CALL-{uuid.uuid4().hex[:10]}"


def get_call_id() -> str:
    return _call_id.get()


def get_location_id() -> str:
    return _location_id.get()


@contextmanager
def call_scope(call_id: Optional[str] = None, location_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID (and optionally a location) for the enclosed block.

    The previous values are restored on exit, so nested scopes and
    concurrent asyncio tasks each see their own context.
    """
    cid = call_id or new_call_id()
    call_token = _call_id.set(cid)
    location_token = _location_id.set(location_id) if location_id else None
    try:
        yield cid
    finally:
        if location_token is not None:
            _location_id.reset(location_token)
        _call_id.reset(call_token)


class CallContextFilter(logging.Filter):
    """Stamps call_id and location_id onto every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = _call_id.get()  # type: ignore[attr-defined]
        record.location_id = _location_id.get()  # type: ignore[attr-defined]
        return True


def get_call_logger(name: str) -> logging.Logger:
    """Return a logger with the CallContextFilter attached.

    Formatters can then include ``%(call_id)s`` and ``%(location_id)s``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallContextFilter) for f in logger.filters):
        logger.addFilter(CallContextFilter())
    return logger
