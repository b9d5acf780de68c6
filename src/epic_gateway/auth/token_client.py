"""OAuth2 client-credentials token exchange with a JWT-bearer client assertion."""

from __future__ import annotations

import logging

import requests
from pydantic import BaseModel, Field, ValidationError

from ..errors import TokenExchangeError
from .assertion import build_client_assertion
from .credentials import SigningCredential


logger = logging.getLogger(__name__)

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class AccessToken(BaseModel):
    """Token endpoint response body."""

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="Bearer")
    expires_in: int | None = None
    scope: str | None = None


class TokenExchangeClient:
    """Trade a freshly signed assertion for a bearer access token.

    Every call signs a new assertion and performs a new exchange; tokens are
    never cached or reused.
    """

    def __init__(
        self,
        credential: SigningCredential,
        token_url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self._credential = credential
        self._token_url = token_url
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def token_url(self) -> str:
        return self._token_url

    def request_token(self) -> AccessToken:
        """POST the client-credentials grant and parse the token response.

        Raises:
            AssertionSigningError: if the assertion cannot be signed.
            TokenExchangeError: on network failure, a non-2xx status, or a
                body without ``access_token``.
        """
        assertion = build_client_assertion(self._credential, self._token_url)

        try:
            response = self._session.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_assertion_type": CLIENT_ASSERTION_TYPE,
                    "client_assertion": assertion,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Token request to %s failed: %s", self._token_url, exc)
            raise TokenExchangeError(f"Token request failed: {exc}") from exc

        if not response.ok:
            detail = _body_of(response)
            logger.error("Token endpoint returned %s: %s", response.status_code, detail)
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code}",
                detail=detail,
                upstream_status=response.status_code,
            )

        try:
            token = AccessToken.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("Token endpoint response has no access_token")
            raise TokenExchangeError(
                "Token endpoint response did not contain an access_token",
                detail=_body_of(response),
                upstream_status=response.status_code,
            ) from exc

        logger.debug("Obtained access token (expires_in=%s)", token.expires_in)
        return token

    def get_access_token(self) -> str:
        """Return just the bearer string from a new exchange."""
        return self.request_token().access_token


def _body_of(response: requests.Response) -> object:
    """Upstream body as JSON when possible, otherwise as text."""
    try:
        return response.json()
    except ValueError:
        return response.text
