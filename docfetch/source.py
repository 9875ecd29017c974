"""Resolving import paths through services and go-import meta tags."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Any, Optional

import requests

from .model import Directory, NotFoundError
from .util import is_valid_path_element

_REFRESH_TO_GODOC = re.compile(r"^[0-9]+; url=https?://godoc\.org/", re.IGNORECASE)
_VALID_HOST = re.compile(r"^[-a-z0-9]+(?:\.[-a-z0-9]+)+$")

GetStatic = Callable[[Any, str, str], Optional[Directory]]
GetVCSDir = Callable[[dict[str, str], str], Optional[Directory]]


@dataclass
class Service:
    """A source code hosting service recognised by an import path pattern."""

    pattern: re.Pattern[str]
    prefix: str = ""
    get: Callable[..., Any] | None = None
    get_presentation: Callable[..., Any] | None = None
    get_project: Callable[..., Any] | None = None

    def match(self, import_path: str) -> dict[str, str] | None:
        """Return the named groups of the pattern for ``import_path``, or ``None``.

        Raises :class:`NotFoundError` when the prefix matches but the pattern
        does not.
        """
        if not import_path.startswith(self.prefix):
            return None
        m = self.pattern.search(import_path)
        if m is None:
            if self.prefix:
                raise NotFoundError(
                    "Import path prefix matches known service, but regexp does not."
                )
            return None
        match = {"importPath": import_path}
        for name, value in m.groupdict().items():
            match[name] = value or ""
        return match


@dataclass(frozen=True)
class ImportMeta:
    """The values of a go-import meta tag."""

    project_root: str
    vcs: str
    repo: str


@dataclass(frozen=True)
class SourceMeta:
    """The values of a go-source meta tag."""

    project_root: str
    project_url: str
    dir_template: str
    file_template: str


def is_http_url(s: str) -> bool:
    """Report whether ``s`` is an http or https URL."""
    return s.startswith(("https://", "http://"))


def replace_dir(s: str, dir: str) -> str:
    """Substitute ``{dir}`` and ``{/dir}`` in a go-source template."""
    dir = dir.strip("/")
    slash_dir = "/" + dir if dir else ""
    return s.replace("{dir}", dir).replace("{/dir}", slash_dir)


class _MetaScanner(HTMLParser):
    """Collects the attributes of meta tags that appear inside the head."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.metas: list[dict[str, str]] = []
        self._done = False

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._done:
            return
        if tag == "body":
            self._done = True
            return
        if tag == "meta":
            values: dict[str, str] = {}
            for name, value in attrs:
                values.setdefault(name.lower(), value or "")
            self.metas.append(values)

    def handle_endtag(self, tag: str) -> None:
        if tag == "head":
            self._done = True


def _is_root_of(project_root: str, import_path: str) -> bool:
    if not import_path.startswith(project_root):
        return False
    return len(import_path) == len(project_root) or import_path[len(project_root)] == "/"


def parse_meta(
    scheme: str, import_path: str, body: str | bytes
) -> tuple[ImportMeta, SourceMeta | None, bool]:
    """Find the go-import and go-source meta tags for ``import_path`` in an HTML page.

    Returns the import meta, the source meta (``None`` when absent or for a
    different project root) and whether the page refreshes back to godoc.org.
    Raises :class:`NotFoundError` when no usable go-import tag is found.
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    scanner = _MetaScanner()
    scanner.feed(text)
    scanner.close()

    error_message = "go-import meta tag not found"
    im: ImportMeta | None = None
    sm: SourceMeta | None = None
    redir = False

    for attrs in scanner.metas:
        if attrs.get("http-equiv", "").lower() == "refresh":
            redir = _REFRESH_TO_GODOC.match(attrs.get("content", "")) is not None
            continue
        name = attrs.get("name", "")
        if name not in ("go-import", "go-source"):
            continue
        fields = attrs.get("content", "").split()
        if not fields:
            continue
        project_root = fields[0]
        if not _is_root_of(project_root, import_path):
            continue
        if name == "go-import":
            if len(fields) != 3:
                error_message = "go-import meta tag content attribute does not have three fields"
                continue
            if fields[1] == "mod":
                continue
            if im is not None:
                im = None
                error_message = "more than one go-import meta tag found"
                break
            im = ImportMeta(project_root=project_root, vcs=fields[1], repo=fields[2])
        else:
            if sm is not None or len(fields) != 4:
                continue
            sm = SourceMeta(
                project_root=project_root,
                project_url=fields[1],
                dir_template=fields[2],
                file_template=fields[3],
            )

    if im is None:
        raise NotFoundError(f"{error_message} at {scheme}://{import_path}")
    if sm is not None and sm.project_root != im.project_root:
        sm = None
    return im, sm, redir


def fetch_meta(
    session: Any, import_path: str
) -> tuple[str, ImportMeta, SourceMeta | None, bool]:
    """Fetch the page for ``import_path`` and parse its meta tags.

    HTTPS is tried first and plain HTTP when it fails. Returns the scheme
    used along with the results of :func:`parse_meta`.
    """
    uri = import_path if "/" in import_path else import_path + "/"
    uri += "?go-get=1"

    scheme = "https"
    try:
        resp = session.get(f"{scheme}://{uri}")
        ok = resp.status_code == 200
    except requests.RequestException:
        ok = False
    if not ok:
        scheme = "http"
        resp = session.get(f"{scheme}://{uri}")
    im, sm, redir = parse_meta(scheme, import_path, resp.content)
    return scheme, im, sm, redir


def _is_valid_repo_path(path: str) -> bool:
    host, *elements = path.split("/")
    if _VALID_HOST.match(host) is None:
        return False
    return all(is_valid_path_element(part) for part in elements)


def _base(path: str) -> str:
    trimmed = path.rstrip("/")
    if not trimmed:
        return "/" if path else "."
    return posixpath.basename(trimmed)


def get_dynamic(
    session: Any,
    import_path: str,
    etag: str,
    get_static: GetStatic,
    get_vcs_dir: GetVCSDir,
) -> Directory:
    """Get a directory for an import path that no static service knows.

    ``get_static(session, path, etag)`` returns the directory from a known
    service or ``None`` when none matches; ``get_vcs_dir(match, etag)`` fetches
    it with version control commands and returns ``None`` when it cannot.
    """
    meta_proto, im, sm, redir = fetch_meta(session, import_path)

    if im.project_root != import_path:
        meta_proto, im_root, _, redir = fetch_meta(session, im.project_root)
        if im_root != im:
            raise NotFoundError("project root mismatch.")

    proto, sep, clone_path = im.repo.partition("://")
    if not sep:
        raise NotFoundError("bad repo URL: " + im.repo)
    repo = clone_path.removesuffix("." + im.vcs)
    if not _is_valid_repo_path(repo):
        raise ValueError(f"bad path from meta: {repo}")
    dir_name = import_path[len(im.project_root):]

    resolved_path = repo + dir_name
    directory = get_static(session, resolved_path, etag)
    if directory is None:
        resolved_path = repo + "." + im.vcs + dir_name
        match = {
            "dir": dir_name,
            "importPath": import_path,
            "clonePath": clone_path,
            "repo": repo,
            "scheme": proto,
            "vcs": im.vcs,
        }
        directory = get_vcs_dir(match, etag)
        if directory is None:
            raise NotFoundError("Import path not valid:")

    directory.import_path = import_path
    directory.project_root = im.project_root
    directory.resolved_path = resolved_path
    directory.project_name = _base(im.project_root)
    if not redir:
        directory.project_url = f"{meta_proto}://{im.project_root}"

    if sm is None:
        return directory

    if is_http_url(sm.project_url):
        directory.project_url = sm.project_url

    if is_http_url(sm.dir_template):
        directory.browse_url = replace_dir(sm.dir_template, dir_name)

    if is_http_url(sm.file_template):
        file_template = replace_dir(sm.file_template, dir_name)
        if "{file}" in file_template:
            cut = file_template.rindex("{file}") + len("{file}")
            hash_at = file_template.find("#")
            if hash_at == -1:
                cut = len(file_template)
            elif hash_at > cut:
                cut = hash_at
            head, tail = file_template[:cut], file_template[cut:]
            for f in directory.files:
                f.browse_url = head.replace("{file}", f.name)
            if "{line}" in tail:
                directory.line_fmt = "%s" + tail.replace("%", "%%").replace("{line}", "%d", 1)

    return directory


def maybe_redirect(
    import_path: str, import_comment: str, resolved_github_path: Mapping[str, str] | str
) -> None:
    """Raise :class:`NotFoundError` with a redirect when a more canonical path exists.

    The import comment wins; without one, a GitHub path that differs only in
    case is redirected to GitHub's reported casing.
    """
    if import_comment:
        if import_path != import_comment:
            raise NotFoundError("not at canonical import path", redirect=import_comment)
        return
    if resolved_github_path and import_path.casefold() == str(resolved_github_path).casefold():
        if import_path != resolved_github_path:
            raise NotFoundError(
                "not at canonical import path", redirect=str(resolved_github_path)
            )