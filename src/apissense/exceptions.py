"""Custom exception hierarchy for apissense."""

from __future__ import annotations


class ApisSenseError(Exception):
    """Base exception for all apissense errors."""


class ApisSenseConfigError(ApisSenseError):
    """Invalid or missing configuration."""


class ApisSenseTransportError(ApisSenseError):
    """Broker connection failure or drop."""

    def __init__(
        self,
        message: str,
        *,
        reason_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.reason_code = reason_code
        self.endpoint = endpoint
        super().__init__(message)


class ApisSenseDecodeError(ApisSenseError):
    """A payload could not be decoded by one strategy.

    Only raised inside the decoder; callers receive a ``DecodeFailure``.
    """


class ApisSenseCommandError(ApisSenseError):
    """Unknown device command word."""
