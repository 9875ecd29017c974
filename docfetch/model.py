"""Data types and errors describing fetched source directories."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta

EXPIRES_AFTER = timedelta(days=2 * 365)


@dataclass
class File:
    """A file and where it can be browsed."""

    name: str
    data: bytes = b""
    browse_url: str = ""


class DirectoryStatus(enum.IntEnum):
    ACTIVE = 0
    DEAD_END_FORK = 1
    QUICK_FORK = 2
    NO_RECENT_COMMITS = 3
    INACTIVE = 4


@dataclass
class Directory:
    """A directory on a version control service."""

    import_path: str = ""
    resolved_path: str = ""
    resolved_github_path: str = ""
    project_root: str = ""
    project_name: str = ""
    project_url: str = ""
    vcs: str = ""
    status: DirectoryStatus = DirectoryStatus.ACTIVE
    etag: str = ""
    files: list[File] = field(default_factory=list)
    subdirectories: list[str] = field(default_factory=list)
    browse_url: str = ""
    line_fmt: str = ""
    fork: bool = False
    stars: int = 0


@dataclass
class Project:
    description: str = ""


class NotFoundError(Exception):
    """The directory or presentation was not found; ``redirect`` may name where it is."""

    def __init__(self, message: str = "", redirect: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.redirect = redirect

    def __str__(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NotFoundError):
            return NotImplemented
        return (self.message, self.redirect) == (other.message, other.redirect)

    def __hash__(self) -> int:
        return hash((self.message, self.redirect))


class RemoteError(Exception):
    """A remote service reported an error."""

    def __init__(self, host: str, message: str) -> None:
        super().__init__(message)
        self.host = host
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotModifiedError(Exception):
    """The package has not changed since the saved etag."""

    def __init__(
        self, since: datetime | None = None, status: DirectoryStatus = DirectoryStatus.ACTIVE
    ) -> None:
        self.since = since
        self.status = status
        super().__init__(str(self))

    def __str__(self) -> str:
        msg = "package not modified"
        if self.since is not None:
            msg += " since " + self.since.strftime("%a, %d %b %Y %H:%M:%S %Z")
        if self.status == DirectoryStatus.QUICK_FORK:
            msg += " (package is a quick fork)"
        return msg