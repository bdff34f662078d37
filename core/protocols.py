"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, FileLogger)."""

    def log_request(self, method: str, target_url: str) -> None: ...
    def log_response(
        self,
        method: str,
        target_url: str,
        status: int,
        *,
        reason: str = "",
        rewritten: bool = False,
    ) -> None: ...
    def log_error(self, target_url: str, status: int, message: str) -> None: ...
