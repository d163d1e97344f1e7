"""Checkout session tagging for engine logs.

Holds, re-validation and confirmation for one client can interleave with
other clients and with staff edits. Every line written through the root
handler carries the checkout session it belongs to, or ``-`` for work
done outside a checkout.

Usage:
    from booking_engine.logging_context import get_session_logger, session_context

    logger = get_session_logger(__name__)
    with session_context("web-7f3a"):
        logger.info("Hold created")  # ... INFO [web-7f3a]: Hold created
    logger.info("Booking moved")     # ... INFO [-]: Booking moved
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO, Iterator, Optional

NO_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(session_id)s]: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """Tag logs in this context with ``session_id`` until the block exits."""
    token = _session_id.set(session_id)
    try:
        yield
    finally:
        _session_id.reset(token)


def get_session_id() -> str:
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def make_handler(stream: Optional[IO[str]] = None) -> logging.Handler:
    """Stream handler whose lines include the checkout session.

    The filter sits on the handler, so records from any logger can be
    formatted with ``%(session_id)s``.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.addFilter(SessionIdFilter())
    return handler


def configure_logging(level: int = logging.INFO) -> None:
    """Install the session-tagging handler on the root logger."""
    logging.basicConfig(level=level, handlers=[make_handler()])


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger that stamps ``session_id`` on its own records.

    Handlers other than ``make_handler``'s, such as test capture handlers,
    see the attribute too.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
