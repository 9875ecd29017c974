"""WSGI handlers that serve static files with ETag and cache headers."""

from __future__ import annotations

import hashlib
import mimetypes
import os
import posixpath
import threading
from collections.abc import Callable
from http import HTTPStatus
from typing import Any
from urllib.parse import parse_qs

from .header import Headers, parse_list

StartResponse = Callable[..., Any]
_DAY = 24 * 60 * 60
_YEAR = 365 * _DAY


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _status(code: HTTPStatus) -> str:
    return f"{code.value} {code.phrase}"


class StaticServer:
    """Serves files found below ``dir``.

    ``max_age`` is in seconds; zero means one day. ``mime_types`` maps file
    extensions to MIME types ahead of the system's table.
    """

    def __init__(
        self,
        dir: str = "",
        max_age: float = 0,
        mime_types: dict[str, str] | None = None,
    ) -> None:
        self.dir = dir
        self.max_age = max_age
        self.mime_types = dict(mime_types or {})
        self._lock = threading.Lock()
        self._etags: dict[str, str] = {}

    def _resolve(self, fname: str) -> str:
        if posixpath.isabs(fname):
            raise ValueError("Absolute path not allowed when creating a StaticServer handler")
        return os.path.normpath(os.path.join(self.dir or ".", fname.replace("/", os.sep)))

    def _mime_type(self, fname: str) -> str:
        ext = os.path.splitext(fname)[1]
        mime_type = self.mime_types.get(ext, "")
        if not mime_type and ext:
            mime_type = mimetypes.guess_type("file" + ext)[0] or ""
        return mime_type or "application/octet-stream"

    def _open_file(self, fname: str) -> tuple[bytes, str]:
        if not os.path.isfile(fname):
            raise FileNotFoundError(f"not a regular file: {fname}")
        with open(fname, "rb") as f:
            return f.read(), self._mime_type(fname)

    def _cached_etag(self, key: str) -> str:
        with self._lock:
            return self._etags.get(key, "")

    def _store_etag(self, key: str, etag: str) -> None:
        with self._lock:
            self._etags[key] = etag

    def file_handler(self, file_name: str) -> StaticHandler:
        """Serve the single file at the slash separated ``file_name``."""
        path = self._resolve(file_name)
        return StaticHandler(self, lambda _p: file_name, lambda _p: self._open_file(path))

    def directory_handler(self, prefix: str, dir_name: str) -> StaticHandler:
        """Serve a directory tree; request paths below ``prefix`` map into ``dir_name``."""
        if not prefix.endswith("/"):
            prefix += "/"
        id_base = dir_name
        root = self._resolve(dir_name)

        def identify(p: str) -> str:
            if not p.startswith(prefix):
                return "."
            return posixpath.normpath(posixpath.join(id_base, p[len(prefix):]))

        def open_path(p: str) -> tuple[bytes, str]:
            if not p.startswith(prefix):
                raise FileNotFoundError("request url does not match directory prefix")
            rel = p[len(prefix):].replace("/", os.sep)
            return self._open_file(os.path.join(root, rel))

        return StaticHandler(self, identify, open_path)

    def files_handler(self, *args: str) -> StaticHandler:
        """Serve the concatenation of the given files."""
        file_names = list(args)
        mime_type = self._mime_type(file_names[0])
        chunks: list[bytes] = []
        open_error: OSError | None = None
        for name in file_names:
            try:
                with open(self._resolve(name), "rb") as f:
                    chunks.append(f.read())
            except OSError as exc:
                open_error = exc
                chunks = []
                break
        content = b"".join(chunks)
        key = " ".join(file_names)

        def open_all(_p: str) -> tuple[bytes, str]:
            if open_error is not None:
                raise open_error
            return content, mime_type

        return StaticHandler(self, lambda _p: key, open_all)


class StaticHandler:
    """A WSGI application serving content chosen by a :class:`StaticServer`."""

    def __init__(
        self,
        server: StaticServer,
        identify: Callable[[str], str],
        open_path: Callable[[str], tuple[bytes, str]],
    ) -> None:
        self._server = server
        self._identify = identify
        self._open = open_path

    def _etag(self, p: str) -> str:
        key = self._identify(p)
        etag = self._server._cached_etag(key)
        if etag:
            return etag
        data, _ = self._open(p)
        etag = f'"{hashlib.sha1(data).hexdigest()}"'
        self._server._store_etag(key, etag)
        return etag

    @staticmethod
    def _not_found(start_response: StartResponse) -> list[bytes]:
        body = (HTTPStatus.NOT_FOUND.phrase + "\n").encode()
        start_response(
            _status(HTTPStatus.NOT_FOUND),
            [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("X-Content-Type-Options", "nosniff"),
            ],
        )
        return [body]

    def __call__(self, environ: dict, start_response: StartResponse) -> list[bytes]:
        raw = environ.get("PATH_INFO", "")
        p = _clean(raw)
        if p != raw:
            start_response(_status(HTTPStatus.MOVED_PERMANENTLY), [("Location", p)])
            return [b""]

        try:
            etag = self._etag(p)
        except OSError:
            return self._not_found(start_response)

        max_age = self._server.max_age or _DAY
        query = parse_qs(environ.get("QUERY_STRING", ""))
        if query.get("v", [""])[0]:
            max_age = _YEAR
        cache_control = f"public, max-age={int(max_age)}"

        request_headers = Headers()
        if_none_match = environ.get("HTTP_IF_NONE_MATCH")
        if if_none_match is not None:
            request_headers.add("If-None-Match", if_none_match)
        if etag in parse_list(request_headers, "If-None-Match"):
            start_response(
                _status(HTTPStatus.NOT_MODIFIED),
                [("Cache-Control", cache_control), ("Etag", etag)],
            )
            return [b""]

        try:
            data, content_type = self._open(p)
        except OSError:
            return self._not_found(start_response)

        headers = [("Cache-Control", cache_control), ("Etag", etag)]
        if content_type:
            headers.append(("Content-Type", content_type))
        if data:
            headers.append(("Content-Length", str(len(data))))
        start_response(_status(HTTPStatus.OK), headers)
        if environ.get("REQUEST_METHOD", "GET") == "HEAD":
            return [b""]
        return [data]