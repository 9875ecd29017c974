"""Parsing helpers for HTTP header values."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Union

HeaderValues = Union[str, Iterable[str]]

_SEPARATORS = frozenset(' \t"(),/:;<=>?@[]\\{}')
_SPACES = " \t\r\n"

_TIME_FORMATS = (
    "%a, %d %b %Y %H:%M:%S GMT",
    "%A, %d-%b-%y %H:%M:%S %Z",
    "%a %b %d %H:%M:%S %Y",
)


def _is_token_char(ch: str) -> bool:
    code = ord(ch)
    return 32 < code < 127 and ch not in _SEPARATORS


def _is_space(ch: str) -> bool:
    return ch in _SPACES


def canonical_key(key: str) -> str:
    """Return the canonical form of a header name, e.g. ``content-type`` -> ``Content-Type``.

    Names holding characters that are not valid in a header field are
    returned unchanged.
    """
    if not all(_is_token_char(ch) for ch in key):
        return key
    out = []
    upper = True
    for ch in key:
        if upper and "a" <= ch <= "z":
            ch = ch.upper()
        elif not upper and "A" <= ch <= "Z":
            ch = ch.lower()
        out.append(ch)
        upper = ch == "-"
    return "".join(out)


class Headers:
    """A multi-valued header mapping with case-insensitive names."""

    def __init__(self, initial: Mapping[str, HeaderValues] | None = None) -> None:
        self._data: dict[str, list[str]] = {}
        if initial is not None:
            for key, values in initial.items():
                self[key] = values

    @staticmethod
    def _values(values: HeaderValues) -> list[str]:
        if isinstance(values, str):
            return [values]
        return list(values)

    def get(self, key: str) -> str:
        """Return the first value for ``key``, or an empty string."""
        values = self._data.get(canonical_key(key))
        return values[0] if values else ""

    def get_all(self, key: str) -> list[str]:
        """Return every value for ``key``."""
        return list(self._data.get(canonical_key(key), ()))

    def set(self, key: str, value: str) -> None:
        """Replace all values for ``key`` with ``value``."""
        self._data[canonical_key(key)] = [value]

    def add(self, key: str, value: str) -> None:
        """Append ``value`` to the values for ``key``."""
        self._data.setdefault(canonical_key(key), []).append(value)

    def __getitem__(self, key: str) -> list[str]:
        return self._data[canonical_key(key)]

    def __setitem__(self, key: str, values: HeaderValues) -> None:
        self._data[canonical_key(key)] = self._values(values)

    def __delitem__(self, key: str) -> None:
        self._data.pop(canonical_key(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and canonical_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def items(self) -> Iterator[tuple[str, list[str]]]:
        return iter(self._data.items())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self == Headers(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"


def _as_headers(headers: Headers | Mapping[str, HeaderValues]) -> Headers:
    return headers if isinstance(headers, Headers) else Headers(headers)


@dataclass(frozen=True)
class AcceptSpec:
    """One entry of an Accept* header."""

    value: str
    q: float


def copy_headers(headers: Headers | Mapping[str, HeaderValues]) -> Headers:
    """Return a copy of the headers."""
    return Headers(dict(_as_headers(headers).items()))


def parse_time(headers: Headers | Mapping[str, HeaderValues], key: str) -> datetime | None:
    """Parse the header as a UTC time; ``None`` when absent or malformed."""
    text = _as_headers(headers).get(key)
    if not text:
        return None
    for fmt in _TIME_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)
    return None


def parse_list(headers: Headers | Mapping[str, HeaderValues], key: str) -> list[str]:
    """Parse a comma separated list of values.

    Commas inside quoted strings are ignored, quoted values are kept as they
    are and surrounding whitespace is trimmed.
    """
    result: list[str] = []
    for s in _as_headers(headers).get_all(key):
        begin = end = 0
        escape = quote = False
        for i, ch in enumerate(s):
            if escape:
                escape = False
                end = i + 1
            elif quote:
                if ch == "\\":
                    escape = True
                elif ch == '"':
                    quote = False
                end = i + 1
            elif ch == '"':
                quote = True
                end = i + 1
            elif _is_space(ch):
                if begin == end:
                    begin = end = i + 1
            elif ch == ",":
                if begin < end:
                    result.append(s[begin:end])
                begin = end = i + 1
            else:
                end = i + 1
        if begin < end:
            result.append(s[begin:end])
    return result


def parse_value_and_params(
    headers: Headers | Mapping[str, HeaderValues], key: str
) -> tuple[str, dict[str, str]]:
    """Parse a value with optional ``; name=value`` parameters, as in Content-Type."""
    params: dict[str, str] = {}
    value, s = _expect_token_slash(_as_headers(headers).get(key))
    if not value:
        return value, params
    value = value.lower()
    s = _skip_space(s)
    while s.startswith(";"):
        pkey, s = _expect_token(_skip_space(s[1:]))
        if not pkey or not s.startswith("="):
            break
        pvalue, s = _expect_token_or_quoted(s[1:])
        if not pvalue:
            break
        params[pkey.lower()] = pvalue
        s = _skip_space(s)
    return value, params


def parse_accept(headers: Headers | Mapping[str, HeaderValues], key: str) -> list[AcceptSpec]:
    """Parse an Accept* header into its specs, in order."""
    specs: list[AcceptSpec] = []
    for s in _as_headers(headers).get_all(key):
        while True:
            value, s = _expect_token_slash(s)
            if not value:
                break
            q = 1.0
            s = _skip_space(s)
            if s.startswith(";"):
                s = _skip_space(s[1:])
                if not s.startswith("q="):
                    break
                q, s = _expect_quality(s[2:])
                if q < 0.0:
                    break
            specs.append(AcceptSpec(value, q))
            s = _skip_space(s)
            if not s.startswith(","):
                break
            s = _skip_space(s[1:])
    return specs


def _span(s: str, pred: Callable[[str], bool]) -> int:
    return next((i for i, ch in enumerate(s) if not pred(ch)), len(s))


def _skip_space(s: str) -> str:
    return s.lstrip(_SPACES)


def _expect_token(s: str) -> tuple[str, str]:
    i = _span(s, _is_token_char)
    return s[:i], s[i:]


def _expect_token_slash(s: str) -> tuple[str, str]:
    i = _span(s, lambda ch: ch == "/" or _is_token_char(ch))
    return s[:i], s[i:]


def _expect_quality(s: str) -> tuple[float, str]:
    if not s or s[0] not in "01":
        return -1.0, ""
    q = float(s[0])
    s = s[1:]
    if not s.startswith("."):
        return q, s
    s = s[1:]
    i = _span(s, lambda ch: "0" <= ch <= "9")
    digits = s[:i]
    numerator = int(digits) if digits else 0
    return q + numerator / 10 ** len(digits), s[i:]


def _expect_token_or_quoted(s: str) -> tuple[str, str]:
    if not s.startswith('"'):
        return _expect_token(s)
    s = s[1:]
    out: list[str] = []
    escape = False
    for i, ch in enumerate(s):
        if escape:
            escape = False
            out.append(ch)
        elif ch == "\\":
            escape = True
        elif ch == '"':
            return "".join(out), s[i + 1:]
        else:
            out.append(ch)
    return "", ""