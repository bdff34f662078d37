"""URL resolution and proxy link encoding."""

from collections.abc import Mapping
from urllib.parse import quote, urljoin, urlsplit

import httpx

from core.exceptions import ResolutionError, TargetParseError

# References with these schemes cannot be fetched through the proxy
PASSTHROUGH_SCHEMES = ("data:", "mailto:", "javascript:", "tel:", "blob:", "about:")

# Same unreserved set as encodeURIComponent
_COMPONENT_SAFE = "!~*'()"

DEFAULT_PROXY_PATH = "/api/proxy"


def is_passthrough_scheme(candidate: str) -> bool:
    """Return True if the reference must be left exactly as written."""
    return candidate.lstrip().lower().startswith(PASSTHROUGH_SCHEMES)


def resolve(base: str, candidate: str) -> str | None:
    """Resolve ``candidate`` against the absolute ``base`` URL.

    Returns None when the candidate uses a scheme that is never rewritten.
    Raises ResolutionError when the candidate is malformed.
    """
    if is_passthrough_scheme(candidate):
        return None
    try:
        resolved = urljoin(base, candidate.strip())
        # urljoin is lenient; httpx rejects bad ports, hosts and IPv6 literals
        httpx.URL(resolved)
    except (ValueError, httpx.InvalidURL) as e:
        raise ResolutionError(f"Cannot resolve {candidate!r} against {base}: {e}") from e
    return resolved


def parse_target(raw: str) -> str:
    """Validate the top-level ?target= value as an absolute URL."""
    try:
        parts = urlsplit(raw.strip())
    except ValueError as e:
        raise TargetParseError(f"Invalid target URL: {raw}", target=raw) from e
    if not parts.scheme or not parts.netloc:
        raise TargetParseError(f"Invalid target URL: {raw}", target=raw)
    return raw.strip()


def encode_proxy_url(prefix: str, absolute_url: str) -> str:
    """Build the URL a client uses to fetch ``absolute_url`` through the proxy."""
    if absolute_url.startswith(prefix):
        return absolute_url
    return prefix + quote(absolute_url, safe=_COMPONENT_SAFE)


def build_proxy_prefix(
    headers: Mapping[str, str],
    path: str = DEFAULT_PROXY_PATH,
    fallback_host: str = "localhost",
) -> str:
    """Derive ``{proto}://{host}{path}?target=`` from inbound request headers."""
    proto = headers.get("x-forwarded-proto") or "http"
    # Chained proxies send a comma-separated list, the client-facing one first
    proto = proto.split(",", 1)[0].strip() or "http"
    host = headers.get("host") or fallback_host
    return f"{proto}://{host}{path}?target="
