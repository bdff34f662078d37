"""Header handling for upstream requests and downstream responses."""

from collections.abc import Iterable

import httpx

# Response headers that block framing or cross-origin embedding
EMBEDDING_BLOCKERS = frozenset(
    {
        "content-security-policy",
        "x-frame-options",
        "cross-origin-embedder-policy",
    }
)

# Request headers the HTTP client computes itself, plus hop-by-hop headers
UNFORWARDED_REQUEST_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "proxy-connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "expect",
    }
)

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

# Describe the upstream body, not the rewritten one
BODY_FRAMING_HEADERS = frozenset({"content-length", "content-encoding"})


class HeaderSanitizer:
    """Shape headers crossing the proxy in both directions."""

    def sanitize(self, headers: httpx.Headers) -> httpx.Headers:
        """Drop embedding restrictions, keeping every other header as sent."""
        return httpx.Headers(
            [
                (key, value)
                for key, value in headers.raw
                if key.decode("latin-1").lower() not in EMBEDDING_BLOCKERS
            ]
        )

    def upstream_headers(
        self, raw_headers: Iterable[tuple[bytes, bytes]]
    ) -> list[tuple[bytes, bytes]]:
        """Forward inbound headers except the ones the client must compute.

        Pairs stay as raw bytes so non-ASCII values reach the origin unchanged.
        """
        return [
            (key, value)
            for key, value in raw_headers
            if key.decode("latin-1").lower() not in UNFORWARDED_REQUEST_HEADERS
        ]

    def downstream_headers(
        self, headers: httpx.Headers, *, rewritten: bool
    ) -> list[tuple[str, str]]:
        """Headers to attach to the outbound response."""
        dropped = HOP_BY_HOP_HEADERS | BODY_FRAMING_HEADERS if rewritten else HOP_BY_HOP_HEADERS
        downstream: list[tuple[str, str]] = []
        for key, value in headers.raw:
            name = key.decode("latin-1")
            if name.lower() in dropped:
                continue
            downstream.append((name, value.decode("latin-1")))
        return downstream
