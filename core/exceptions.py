"""Custom exception hierarchy for the mirror proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class MissingTargetError(ProxyError):
    """Inbound request carries no ?target= parameter."""


class TargetParseError(ProxyError):
    """Raised when the ?target= value is not an absolute URL.

    Attributes:
        target: The raw value received from the client
    """

    def __init__(self, message: str, target: str | None = None) -> None:
        super().__init__(message)
        self.target = target


class UpstreamFetchError(ProxyError):
    """Raised when the upstream request cannot be completed.

    Attributes:
        message: Error detail from the HTTP client
        target_url: URL the request was sent to
    """

    def __init__(self, message: str, target_url: str | None = None) -> None:
        super().__init__(message)
        self.target_url = target_url


class ResolutionError(ProxyError):
    """A single embedded reference could not be resolved against its base."""
