"""Context-scoped loggers and WSGI middleware that tags requests."""

from __future__ import annotations

import logging
import secrets
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Union

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]

_APP_ENGINE_REQUEST_ID = "HTTP_X_APPENGINE_REQUEST_LOG_ID"
_current: ContextVar[LoggerLike | None] = ContextVar("docfetch_logger", default=None)


def _format_context(context: dict[str, Any]) -> str:
    return "".join(f" {key}={value}" for key, value in context.items())


class _ContextAdapter(logging.LoggerAdapter):
    """Appends fixed ``key=value`` context to every message."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"{msg}{_format_context(dict(self.extra or {}))}", kwargs


def current_logger() -> LoggerLike:
    """Return the logger for the current context, or the package logger."""
    logger = _current.get()
    return logger if logger is not None else logging.getLogger("docfetch")


@contextmanager
def use_logger(logger: LoggerLike) -> Iterator[LoggerLike]:
    """Make ``logger`` current for the duration of the block."""
    token = _current.set(logger)
    try:
        yield logger
    finally:
        _current.reset(token)


def _log(level: int, msg: str, context: dict[str, Any]) -> None:
    current_logger().log(level, msg + _format_context(context))


def debug(msg: str, **kwargs: Any) -> None:
    _log(logging.DEBUG, msg, kwargs)


def info(msg: str, **kwargs: Any) -> None:
    _log(logging.INFO, msg, kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    _log(logging.WARNING, msg, kwargs)


def error(msg: str, **kwargs: Any) -> None:
    _log(logging.ERROR, msg, kwargs)


def crit(msg: str, **kwargs: Any) -> None:
    _log(logging.CRITICAL, msg, kwargs)


def fatal(msg: str, **kwargs: Any) -> None:
    """Log at critical level, then exit with status 1."""
    crit(msg, **kwargs)
    sys.exit(1)


class HTTPContextHandler:
    """WSGI middleware giving each request a logger tagged with a request id.

    On App Engine the platform's request id header is used when present;
    otherwise 16 random bytes, hex encoded.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        logger: LoggerLike | None = None,
        on_app_engine: bool = False,
    ) -> None:
        self.app = app
        self.logger = logger if logger is not None else logging.getLogger("docfetch")
        self.on_app_engine = on_app_engine

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Any:
        request_id = environ.get(_APP_ENGINE_REQUEST_ID, "")
        if not self.on_app_engine or not request_id:
            request_id = secrets.token_hex(16)
        request_logger = _ContextAdapter(self.logger, {"request_id": request_id})
        environ["docfetch.logger"] = request_logger
        with use_logger(request_logger):
            return self.app(environ, start_response)