"""Uniform ``{success, message, data|error}`` response envelope."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from ..errors import (
    AssertionSigningError,
    DataShapeError,
    GatewayError,
    InvalidRequestError,
    TokenExchangeError,
)


AUTH_FAILED = "Authentication failed"


class Envelope(BaseModel):
    """Response body shared by every JSON route.

    Routes may add named fields (``documentId``, ``statusUrl`` ...) next to
    ``message``.
    """

    model_config = ConfigDict(extra="allow")

    success: bool
    message: str
    data: Any = None
    error: Any = None


class RouteFailure(Exception):
    """A GatewayError tagged with the message of the route it escaped from."""

    def __init__(self, message: str, cause: GatewayError) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


@contextmanager
def reported_as(message: str) -> Iterator[None]:
    """Re-raise any GatewayError in the block as a RouteFailure carrying ``message``."""
    try:
        yield
    except GatewayError as exc:
        raise RouteFailure(message, exc) from exc


def success(message: str, data: Any = None, status_code: int = 200, **fields: Any) -> JSONResponse:
    body = Envelope(success=True, message=message, data=data, **fields)
    return JSONResponse(_dump(body), status_code=status_code)


def failure(message: str, exc: GatewayError) -> JSONResponse:
    """Envelope for a failed request.

    Validation and data-shape errors keep their own message so callers can
    tell them apart from generic upstream failures; token problems are
    reported as an authentication failure.
    """
    if isinstance(exc, (InvalidRequestError, DataShapeError)):
        message = exc.message
    elif isinstance(exc, (TokenExchangeError, AssertionSigningError)):
        message = AUTH_FAILED
    body = Envelope(success=False, message=message, error=exc.to_error())
    return JSONResponse(_dump(body), status_code=exc.status_code)


def _dump(envelope: Envelope) -> dict[str, Any]:
    """Serialize, leaving out data/error and any named field that is empty."""
    return {key: value for key, value in envelope.model_dump().items() if value is not None}
