"""WSGI health check endpoints."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any, Protocol, runtime_checkable

StartResponse = Callable[..., Any]


@runtime_checkable
class Checker(Protocol):
    """Something whose health can be checked."""

    def check_health(self) -> None:
        """Raise an exception if the resource is unhealthy; must be thread-safe."""
        ...


def _respond(start_response: StartResponse, status: HTTPStatus, body: bytes) -> list[bytes]:
    start_response(
        f"{status.value} {status.phrase}",
        [
            ("Content-Length", str(len(body))),
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
        ],
    )
    return [body]


class Handler:
    """Reports 200 when every checker is healthy and 500 otherwise.

    A handler with no checkers is always healthy.
    """

    def __init__(self, checkers: Iterable[Checker] = ()) -> None:
        self._checkers: list[Checker] = list(checkers)

    def add(self, checker: Checker) -> None:
        """Add a check to the handler."""
        self._checkers.append(checker)

    def __call__(self, environ: dict, start_response: StartResponse) -> list[bytes]:
        for checker in self._checkers:
            try:
                checker.check_health()
            except Exception:
                return _respond(start_response, HTTPStatus.INTERNAL_SERVER_ERROR, b"unhealthy")
        return _respond(start_response, HTTPStatus.OK, b"ok")


def handle_live(environ: dict, start_response: StartResponse) -> list[bytes]:
    """Answer a liveness check with 200 straight away."""
    return _respond(start_response, HTTPStatus.OK, b"ok")