"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..auth.credentials import load_signing_credential
from ..auth.token_client import TokenExchangeClient
from ..config import Settings
from ..errors import GatewayError, InvalidRequestError
from ..fhir.gateway import ResourceGateway
from .envelope import RouteFailure, failure
from .routes import build_router


logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def build_gateway(settings: Settings) -> ResourceGateway:
    """Load the signing key and wire the token client into a ResourceGateway.

    Raises:
        ConfigurationError: if the private key cannot be loaded.
    """
    credential = load_signing_credential(
        issuer=settings.issuer,
        client_id=settings.client_id,
        private_key_path=settings.private_key_path,
    )
    token_client = TokenExchangeClient(credential, settings.token_url, timeout=settings.timeout)
    return ResourceGateway(settings, token_client)


def create_app(settings: Settings, gateway: ResourceGateway | None = None) -> FastAPI:
    """Build the HTTP application around one gateway instance."""
    gateway = gateway or build_gateway(settings)

    app = FastAPI(title="Epic FHIR Gateway")
    app.state.settings = settings
    app.state.gateway = gateway
    app.include_router(
        build_router(
            gateway,
            default_patient_id=settings.default_patient_id,
            chunk_size=settings.download_chunk_size,
        )
    )

    @app.exception_handler(RouteFailure)
    async def route_failure_handler(request: Request, exc: RouteFailure) -> JSONResponse:
        logger.error("%s %s: %s (%s)", request.method, request.url.path, exc.message, exc.cause.message)
        return failure(exc.message, exc.cause)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
        return failure("Error processing request", exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = InvalidRequestError("Invalid request body", detail=jsonable_errors(exc))
        return failure(error.message, error)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s: unhandled error", request.method, request.url.path)
        return failure(INTERNAL_ERROR, GatewayError(INTERNAL_ERROR, detail=str(exc)))

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Keep only the JSON-safe parts of FastAPI's validation error list."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
