"""Error taxonomy for the Epic FHIR gateway.

Every failure carries the HTTP status the router should answer with, a short
human message, and an optional ``detail`` (usually the upstream error body)
that is passed through to the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for all gateway failures."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        detail: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_error(self) -> Any:
        """Value placed in the envelope's ``error`` field."""
        return self.detail if self.detail is not None else self.message


class ConfigurationError(GatewayError):
    """Missing or unusable configuration. Fatal at startup."""


class AssertionSigningError(GatewayError):
    """The client assertion could not be signed with the configured key."""


class TokenExchangeError(GatewayError):
    """The authorization server did not hand back a usable access token."""

    def __init__(
        self,
        message: str,
        detail: Any = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, detail)
        self.upstream_status = upstream_status


class UpstreamError(GatewayError):
    """The FHIR server answered with a non-2xx status or was unreachable."""

    def __init__(
        self,
        message: str,
        detail: Any = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, detail)
        self.upstream_status = upstream_status


class InvalidRequestError(GatewayError):
    """A required caller-supplied parameter is missing."""

    status_code = 400


class DataShapeError(GatewayError):
    """An upstream response lacked a field the operation depends on."""
