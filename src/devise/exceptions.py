"""Custom exceptions for the rate acquisition and conversion engine.

All source, cache and conversion exceptions live here to avoid circular
imports between packages.
"""


class DeviseError(Exception):
    """Base exception for all engine errors."""


class NetworkError(DeviseError):
    """Transport failure or timeout talking to a rate service.

    Retryable by user action only; nothing retries automatically.
    """


class InvalidResponse(DeviseError):
    """Upstream payload is malformed or reports a non-success status."""


class UnsupportedCurrency(DeviseError):
    """Requested currency code is outside the supported set for this source."""

    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or f"Unsupported currency: {code}")


class UnsupportedBase(UnsupportedCurrency):
    """The live rate service rejected the requested base currency."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(code, message or f"Unsupported base currency: {code}")


class UnknownCurrency(DeviseError):
    """Conversion requested against a rate table lacking that code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"No rate available for {code}")


class NotAuthenticated(DeviseError):
    """Historical cache access requires a signed-in user."""
