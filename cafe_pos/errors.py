"""Error taxonomy for actions that can fail before or at the gateway."""

from __future__ import annotations


class CafePosError(Exception):
    """Base class for errors reported to the operator."""


class ConfigurationError(CafePosError):
    """The API endpoint is not configured."""


class AuthenticationError(CafePosError):
    """No credential, or the gateway rejected it."""


class ValidationError(CafePosError):
    """Input rejected locally, before any network call."""


class GatewayError(CafePosError):
    """Non-2xx response, transport failure or malformed payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
