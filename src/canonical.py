# SPDX-License-Identifier: MIT
"""URL canonicalisation applied before allocation.

The same resource submitted with reordered query parameters, default ports,
fragments or redundant slashes must map to the same canonical string so that
it receives the same code.
"""

from __future__ import annotations

import re
from typing import NamedTuple
from urllib.parse import parse_qsl, quote, urlsplit

from models import CanonicalConfig

# Characters ``encodeURIComponent`` leaves untouched besides alphanumerics.
_COMPONENT_SAFE = "-_.!~*'()"
_NUMERIC_HOST = re.compile(r"^[0-9.]+$")
_SLASH_RUN = re.compile(r"/{2,}")
# RFC 3986 path characters plus ``%`` so existing escapes are kept as-is.
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"


class CanonicalizationError(ValueError):
    """Raised when a URL cannot be accepted for shortening."""


class UrlParts(NamedTuple):
    """Allocation keys derived from a canonical URL."""

    domain_key: str
    path_key: str
    query_key: str


def _encode_component(value: str) -> str:
    return quote(value, safe=_COMPONENT_SAFE)


def _is_rejected_host(host: str, config: CanonicalConfig) -> bool:
    return (
        host in config.reject_hosts
        or host.endswith(".local")
        or host.startswith("localhost")
        or bool(_NUMERIC_HOST.match(host))
        or host == "::1"
    )


def _ascii_host(host: str, raw_url: str) -> str:
    """Return ``host`` with internationalised labels in their ``xn--`` form."""
    if host.isascii():
        return host
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise CanonicalizationError(f"Invalid host: {raw_url}") from exc


def _format_host(host: str) -> str:
    return f"[{host}]" if ":" in host else host


def _sorted_query(query: str) -> str:
    """Return ``query`` with parameters ordered by name.

    Names compare case-insensitively first, with lowercase ahead of uppercase
    on ties. Parameters sharing a name keep their relative order.
    """
    params = parse_qsl(query, keep_blank_values=True)
    params.sort(key=lambda item: (item[0].casefold(), item[0].swapcase()))
    return "&".join(
        f"{_encode_component(key)}={_encode_component(value)}" for key, value in params
    )


def _normalise_path(path: str) -> str:
    path = _SLASH_RUN.sub("/", path or "/")
    path = quote(path, safe=_PATH_SAFE)
    if not path.startswith("/"):
        path = f"/{path}"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def canonize_url(raw_url: str, config: CanonicalConfig | None = None) -> str:
    """Return the canonical form of ``raw_url``.

    Args:
        raw_url: URL as submitted by a user.
        config: Accepted protocols, default ports and rejected hosts.

    Returns:
        Canonical URL string.

    Raises:
        CanonicalizationError: If the URL is empty, malformed, uses a scheme
            that is not accepted or points at a local host.
    """
    rules = config or CanonicalConfig()
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise CanonicalizationError("Empty or invalid URL")

    try:
        parts = urlsplit(raw_url.strip())
        port = parts.port
    except ValueError as exc:
        raise CanonicalizationError(f"Invalid URL: {raw_url}") from exc

    scheme = parts.scheme.lower()
    host = _ascii_host((parts.hostname or "").lower(), raw_url)
    if not scheme or not host:
        raise CanonicalizationError(f"Invalid URL: {raw_url}")
    if scheme not in rules.accepted_protocols:
        raise CanonicalizationError(f"Protocol not allowed: {scheme}")
    if _is_rejected_host(host, rules):
        raise CanonicalizationError("Local host not allowed")

    if scheme == "http" and port == 443:
        scheme = "https"
        port = None
    elif scheme == "https" and port == 80:
        port = None
    elif port == rules.default_ports.get(scheme):
        port = None

    userinfo = ""
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        userinfo = f"{userinfo}@"

    netloc = f"{userinfo}{_format_host(host)}"
    if port:
        netloc = f"{netloc}:{port}"

    query = _sorted_query(parts.query)
    search = f"?{query}" if query else ""
    return f"{scheme}://{netloc}{_normalise_path(parts.path)}{search}"


def split_url(canonical_url: str) -> UrlParts:
    """Return the domain, path and query keys of ``canonical_url``.

    The domain key is ``scheme://host[:port]``; the path defaults to ``/``
    and the query key keeps its leading ``?`` or is empty.
    """
    parts = urlsplit(canonical_url)
    host = parts.hostname or ""
    domain_key = f"{parts.scheme}://{_format_host(host)}"
    if parts.port:
        domain_key = f"{domain_key}:{parts.port}"
    return UrlParts(
        domain_key=domain_key,
        path_key=parts.path or "/",
        query_key=f"?{parts.query}" if parts.query else "",
    )


__all__ = ["CanonicalizationError", "UrlParts", "canonize_url", "split_url"]
