"""Content negotiation and small address helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .header import Headers, HeaderValues, parse_accept


def strip_port(s: str) -> str:
    """Remove the port from a ``host:port`` address; other input is returned unchanged."""
    host = _split_host(s)
    return s if host is None else host


def _split_host(s: str) -> str | None:
    if s.startswith("["):
        end = s.find("]")
        if end < 0:
            return None
        rest = s[end + 1:]
        if not rest.startswith(":"):
            return None
        host = s[1:end]
        if "[" in host or "]" in rest:
            return None
        return host
    host, sep, _ = s.rpartition(":")
    if not sep or ":" in host or "[" in host or "]" in host:
        return None
    return host


def negotiate_content_encoding(
    headers: Headers | Mapping[str, HeaderValues], offers: Sequence[str]
) -> str:
    """Return the best offered encoding for the Accept-Encoding header.

    Offers earlier in the list win ties. An empty string means no offer is
    acceptable.
    """
    best_offer = "identity"
    best_q = -1.0
    specs = parse_accept(headers, "Accept-Encoding")
    for offer in offers:
        for spec in specs:
            if spec.q > best_q and spec.value in ("*", offer):
                best_q = spec.q
                best_offer = offer
    if best_q == 0:
        best_offer = ""
    return best_offer


def negotiate_content_type(
    headers: Headers | Mapping[str, HeaderValues],
    offers: Sequence[str],
    default_offer: str,
) -> str:
    """Return the best offered content type for the Accept header.

    At equal weight a more specific match wins (``text/*`` beats ``*/*``),
    then the earlier offer. ``default_offer`` is returned when nothing matches.
    """
    best_offer = default_offer
    best_q = -1.0
    best_wild = 3
    specs = parse_accept(headers, "Accept")
    for offer in offers:
        for spec in specs:
            if spec.q == 0.0 or spec.q < best_q:
                continue
            if spec.value == "*/*":
                if spec.q > best_q or best_wild > 2:
                    best_q, best_wild, best_offer = spec.q, 2, offer
            elif spec.value.endswith("/*"):
                if offer.startswith(spec.value[:-1]) and (spec.q > best_q or best_wild > 1):
                    best_q, best_wild, best_offer = spec.q, 1, offer
            elif spec.value == offer and (spec.q > best_q or best_wild > 0):
                best_q, best_wild, best_offer = spec.q, 0, offer
    return best_offer