"""Shared request data types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PreparedRequest:
    """Prepared data for an upstream request."""

    method: str
    target_url: str
    headers: list[tuple[bytes, bytes]]
    body: bytes
    proxy_prefix: str
