"""Small helpers for templates, file names and path elements."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping

from .model import NotFoundError

DEFAULT_TAGS = {"git": "master", "hg": "default"}

_README = re.compile(r"^readme(?:$|\.)", re.IGNORECASE)
_LINE_COMMENT = re.compile(rb"(?m)^//line .*$")


def best_tag(tags: Mapping[str, str], default_tag: str) -> tuple[str, str]:
    """Return ``(tag, commit)``, preferring ``go1`` over ``default_tag``."""
    for tag in ("go1", default_tag):
        if tag in tags:
            return tag, tags[tag]
    raise NotFoundError("Tag or branch not found.")


def expand(template: str, match: Mapping[str, str], *args: str) -> str:
    """Replace ``{k}`` with ``match[k]``, or with ``args[int(k)]`` when ``k`` is not in match."""
    out: list[str] = []
    while True:
        start = template.find("{")
        if start < 0:
            break
        out.append(template[:start])
        template = template[start + 1:]
        end = template.index("}")
        key = template[:end]
        if key in match:
            out.append(match[key])
        else:
            try:
                index = int(key)
            except ValueError:
                index = 0
            out.append(args[index])
        template = template[end + 1:]
    out.append(template)
    return "".join(out)


def is_doc_file(name: str) -> bool:
    """Report whether a file belongs in the documentation."""
    if name.endswith(".go") and name[0] not in "_.":
        return True
    return _README.match(name) is not None


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch).startswith("L")


def is_valid_path_element(s: str) -> bool:
    """Report whether ``s`` is a valid element of an import path."""
    if not s:
        return False
    first, rest = s[0], s[1:]
    if not (_is_letter(first) or first in "-~+_" or "0" <= first <= "9"):
        return False
    return all(_is_letter(ch) or ch in "-_." or "0" <= ch <= "9" for ch in rest)


def overwrite_line_comments(data: bytes) -> bytes:
    """Return ``data`` with the text of ``//line`` comments blanked out."""
    out = bytearray(data)
    for m in _LINE_COMMENT.finditer(data):
        out[m.start() + 2:m.end()] = b" " * (m.end() - m.start() - 2)
    return bytes(out)