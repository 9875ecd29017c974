"""An in-memory response that can be replayed onto another response writer."""

from __future__ import annotations

from typing import Protocol

from .header import Headers


class ResponseWriter(Protocol):
    """What a response destination offers."""

    @property
    def headers(self) -> Headers: ...

    def write_header(self, status: int) -> None: ...

    def write(self, data: bytes) -> int: ...


class ResponseBuffer:
    """Collects a status, headers and body for later delivery."""

    def __init__(self) -> None:
        self._body = bytearray()
        self._status = 0
        self._headers = Headers()

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def status(self) -> int:
        return self._status

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def write(self, data: bytes) -> int:
        """Append ``data`` to the body and return its length."""
        self._body.extend(data)
        return len(data)

    def write_header(self, status: int) -> None:
        """Record the response status."""
        self._status = status

    def write_to(self, writer: ResponseWriter) -> None:
        """Copy headers, status and body onto ``writer``."""
        for key, values in self._headers.items():
            writer.headers[key] = list(values)
        if self._body:
            writer.headers.set("Content-Length", str(len(self._body)))
        if self._status:
            writer.write_header(self._status)
        if self._body:
            writer.write(bytes(self._body))