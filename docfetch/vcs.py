"""Fetching package directories with version control commands."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import subprocess
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .model import Directory, File, NotFoundError, NotModifiedError
from .util import best_tag, expand, is_doc_file, is_valid_path_element

_log = logging.getLogger("docfetch")

LS_REMOTE_TIMEOUT = 5 * 60
CLONE_TIMEOUT = 10 * 60
FETCH_TIMEOUT = 5 * 60
CHECKOUT_TIMEOUT = 60

TEMP_DIR = os.path.join(tempfile.gettempdir(), "docfetch")

VCS_PATH_PATTERN = re.compile(
    r"^(?P<repo>(?:[a-z0-9.\-]+\.)+[a-z0-9.\-]+(?::[0-9]+)?/[A-Za-z0-9_.\-/]*?)"
    r"\.(?P<vcs>bzr|git|hg|svn)(?P<dir>/[A-Za-z0-9_.\-/]*)?$"
)

_LS_REMOTE = re.compile(r"(?m)^([0-9a-f]{40})\s+refs/(?:tags|heads)/(.+)$")
_SVN_REVISION = re.compile(r"(?m)^Last Changed Rev: ([0-9]+)$")

_COMMAND_ERRORS = (OSError, subprocess.SubprocessError)


@dataclass(frozen=True)
class UrlTemplates:
    """Templates for browsing files of a well known repository host."""

    pattern: re.Pattern[str] | None = None
    file_browse: str = ""
    project: str = ""
    line: str = ""


_VCS_SERVICES = (
    UrlTemplates(
        re.compile(r"^git\.gitorious\.org/(?P<repo>[^/]+/[^/]+)$"),
        "https://gitorious.org/{repo}/blobs/{tag}/{dir}{0}",
        "https://gitorious.org/{repo}",
        "%s#line%d",
    ),
    UrlTemplates(
        re.compile(r"^git\.oschina\.net/(?P<repo>[^/]+/[^/]+)$"),
        "http://git.oschina.net/{repo}/blob/{tag}/{dir}{0}",
        "http://git.oschina.net/{repo}",
        "%s#L%d",
    ),
    UrlTemplates(
        re.compile(r"^(?P<r1>[^.]+)\.googlesource.com/(?P<r2>[^./]+)$"),
        "https://{r1}.googlesource.com/{r2}/+/{tag}/{dir}{0}",
        "https://{r1}.googlesource.com/{r2}/+/{tag}",
        "%s#%d",
    ),
    UrlTemplates(
        re.compile(r"^gitcafe.com/(?P<repo>[^/]+/.[^/]+)$"),
        "https://gitcafe.com/{repo}/tree/{tag}/{dir}{0}",
        "https://gitcafe.com/{repo}",
        "",
    ),
)


def lookup_url_template(repo: str, dir: str, tag: str) -> tuple[UrlTemplates, dict[str, str]]:
    """Find the URL templates and their substitutions for a well known repository.

    Unknown repositories get empty templates and an empty match.
    """
    if dir.startswith("/"):
        dir = dir[1:] + "/"
    for templates in _VCS_SERVICES:
        assert templates.pattern is not None
        m = templates.pattern.search(repo)
        if m is not None:
            match = {"dir": dir, "tag": tag}
            match.update({k: v or "" for k, v in m.groupdict().items()})
            return templates, match
    return UrlTemplates(), {}


def _run(args: Sequence[str], timeout: float, cwd: str | None = None, capture: bool = False) -> bytes:
    _log.info(" ".join(args))
    result = subprocess.run(
        list(args),
        cwd=cwd,
        stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        timeout=timeout,
        check=True,
    )
    return result.stdout or b""


def download_git(
    schemes: Sequence[str], clone_path: str, repo: str, saved_etag: str, temp_dir: str = TEMP_DIR
) -> tuple[str, str]:
    """Bring a local git checkout up to date; return ``(tag, etag)``."""
    for scheme in schemes:
        try:
            output = _run(
                ["git", "ls-remote", "--heads", "--tags", f"{scheme}://{clone_path}"],
                LS_REMOTE_TIMEOUT,
                capture=True,
            )
        except _COMMAND_ERRORS:
            continue
        break
    else:
        raise NotFoundError("VCS not found")

    text = output.decode("utf-8", errors="replace")
    tags = {m.group(2): m.group(1) for m in _LS_REMOTE.finditer(text)}
    tag, commit = best_tag(tags, "master")

    etag = f"{scheme}-{commit}"
    if etag == saved_etag:
        raise NotModifiedError()

    local = os.path.join(temp_dir, repo + ".git")
    try:
        with open(os.path.join(local, ".git", "HEAD"), "rb") as f:
            head = f.read()
    except OSError:
        os.makedirs(local, exist_ok=True)
        _run(["git", "clone", f"{scheme}://{clone_path}", local], CLONE_TIMEOUT)
    else:
        if head.rstrip(b"\n").decode("utf-8", errors="replace") == commit:
            return tag, etag
        _run(["git", "fetch"], FETCH_TIMEOUT, cwd=local)

    _run(["git", "checkout", "--detach", "--force", commit], CHECKOUT_TIMEOUT, cwd=local)
    return tag, etag


def download_svn(
    schemes: Sequence[str], clone_path: str, repo: str, saved_etag: str, temp_dir: str = TEMP_DIR
) -> tuple[str, str]:
    """Bring a local subversion checkout up to date; return ``("", etag)``."""
    for scheme in schemes:
        try:
            revno = get_svn_revision(f"{scheme}://{clone_path}")
        except (*_COMMAND_ERRORS, NotFoundError):
            continue
        break
    else:
        raise NotFoundError("VCS not found")

    etag = f"{scheme}-{revno}"
    if etag == saved_etag:
        raise NotModifiedError()

    local = os.path.join(temp_dir, repo + ".svn")
    try:
        local_revno = get_svn_revision(local)
    except (*_COMMAND_ERRORS, NotFoundError) as exc:
        _log.info("err: %s", exc)
        os.makedirs(local, exist_ok=True)
        _run(["svn", "checkout", f"{scheme}://{clone_path}", "-r", revno, local], CLONE_TIMEOUT)
    else:
        if local_revno != revno:
            _run(["svn", "update", "-r", revno], FETCH_TIMEOUT, cwd=local)

    return "", etag


def get_svn_revision(target: str) -> str:
    """Return the last changed revision reported by ``svn info`` for ``target``."""
    output = _run(["svn", "info", target], LS_REMOTE_TIMEOUT, capture=True)
    m = _SVN_REVISION.search(output.decode("utf-8", errors="replace"))
    if m is None:
        raise NotFoundError("Last changed revision not found")
    return m.group(1)


@dataclass(frozen=True)
class _VCSCommand:
    schemes: tuple[str, ...]
    download: Callable[..., tuple[str, str]]


_VCS_COMMANDS = {
    "git": _VCSCommand(("http", "https", "ssh", "git"), download_git),
    "svn": _VCSCommand(("http", "https", "svn"), download_svn),
}


def get_vcs_dir(match: dict[str, str], etag_saved: str, temp_dir: str = TEMP_DIR) -> Directory:
    """Download a repository with its VCS command and read the requested directory."""
    vcs = match.get("vcs", "")
    command = _VCS_COMMANDS.get(vcs)
    if command is None:
        raise NotFoundError(f"VCS not supported: {vcs}")

    scheme = match.get("scheme", "")
    if not scheme:
        i = etag_saved.find("-")
        if i > 0:
            scheme = etag_saved[:i]

    schemes: Sequence[str] = command.schemes
    if scheme in command.schemes:
        schemes = (scheme,)

    repo = match.get("repo", "")
    clone_path = match.get("clonePath", repo)
    dir_name = match.get("dir", "")

    tag, etag = command.download(schemes, clone_path, repo, etag_saved, temp_dir)

    templates, url_match = lookup_url_template(repo, dir_name, tag)

    root = os.path.join(temp_dir, *f"{repo}.{vcs}".split("/"))
    local = os.path.normpath(os.path.join(root, *[p for p in dir_name.split("/") if p]))
    if not os.path.exists(local):
        raise NotFoundError(f"no such file or directory: {local}")
    if not os.path.isdir(local):
        raise NotFoundError(f'file "{dir_name}" is not a directory')

    files: list[File] = []
    subdirs: list[str] = []
    with os.scandir(local) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            if entry.is_dir():
                if is_valid_path_element(entry.name):
                    subdirs.append(entry.name)
            elif is_doc_file(entry.name):
                with open(entry.path, "rb") as f:
                    data = f.read()
                files.append(
                    File(
                        name=entry.name,
                        data=data,
                        browse_url=expand(templates.file_browse, url_match, entry.name),
                    )
                )

    return Directory(
        line_fmt=templates.line,
        project_root=f"{repo}.{vcs}",
        project_name=posixpath.basename(repo.rstrip("/")) or ".",
        project_url=expand(templates.project, url_match),
        browse_url="",
        etag=etag,
        vcs=vcs,
        subdirectories=subdirs,
        files=files,
    )