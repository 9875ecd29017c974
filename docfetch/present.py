"""Rewrites presentation sources so their assets resolve remotely."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .model import File

_ASSET = re.compile(rb"(?m)^\.(play|code|image|background|iframe|html)\s+(?:-\S+\s+)*(\S+)")


@dataclass
class Presentation:
    filename: str
    files: dict[str, bytes] = field(default_factory=dict)
    updated: datetime | None = None


@dataclass
class PresentationBuilder:
    """Builds a :class:`Presentation` from source text.

    ``resolve_url`` maps an asset name to its URL; ``fetch`` returns the files
    named by ``.code`` and ``.play`` commands.
    """

    filename: str
    data: bytes
    resolve_url: Callable[[str], str]
    fetch: Callable[[Sequence[str]], Sequence[File] | None]

    def build(self) -> Presentation:
        """Rewrite the source and gather the files it refers to."""
        out = bytearray()
        fnames: list[str] = []
        pos = 0
        for m in _ASSET.finditer(self.data):
            command = m.group(1).decode()
            name = posixpath.normpath(m.group(2).decode())
            if command in ("iframe", "image", "background"):
                out += self.data[pos:m.start(2)]
                out += self.resolve_url(name).encode()
            elif command == "html":
                out += b"\nERROR: .html not supported\n"
            else:
                out += self.data[pos:m.end(2)]
                if name not in fnames:
                    fnames.append(name)
            pos = m.end(2)
        out += self.data[pos:]
        files = self.fetch(fnames) or []
        pres = Presentation(
            filename=self.filename,
            files={self.filename: bytes(out)},
            updated=datetime.now(timezone.utc),
        )
        for f in files:
            pres.files[f.name] = f.data
        return pres