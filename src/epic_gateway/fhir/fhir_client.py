"""FHIR REST client that issues one authenticated HTTP call per method."""

from __future__ import annotations

import logging

import requests

from ..errors import UpstreamError


logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"


class FHIRClient:
    """Minimal FHIR REST client bound to one base URL (R4 or STU3).

    Every method takes the bearer token explicitly; the client itself holds
    no credentials.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def url_for(self, path: str) -> str:
        """Absolute URLs pass through; relative paths are joined to the base URL."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_resource(
        self,
        resource_type: str,
        resource_id: str,
        access_token: str,
        headers: dict | None = None,
    ) -> requests.Response:
        """GET a FHIR resource by type and logical ID."""
        return self.get(f"{resource_type}/{resource_id}", access_token, headers=headers)

    def search(
        self,
        resource_type: str,
        query: str,
        access_token: str,
    ) -> requests.Response:
        """GET ``resource_type?query`` with the raw query string forwarded as-is."""
        path = f"{resource_type}?{query}" if query else resource_type
        return self.get(path, access_token)

    def get(
        self,
        path: str,
        access_token: str,
        headers: dict | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """GET a relative path or absolute URL.

        Raises:
            UpstreamError: on network failure or a non-2xx response.
        """
        url = self.url_for(path)
        default_headers = {"Accept": FHIR_JSON, **_bearer(access_token)}
        if headers:
            default_headers.update(headers)
        return self._send("GET", url, headers=default_headers, stream=stream)

    def post_resource(
        self,
        path: str,
        resource: dict,
        access_token: str,
        headers: dict | None = None,
    ) -> requests.Response:
        """POST a FHIR resource (or Parameters body) as JSON.

        Raises:
            UpstreamError: on network failure or a non-2xx response.
        """
        url = self.url_for(path)
        default_headers = {
            "Content-Type": FHIR_JSON,
            "Accept": FHIR_JSON,
            **_bearer(access_token),
        }
        if headers:
            default_headers.update(headers)
        return self._send("POST", url, headers=default_headers, json=resource)

    def _send(self, method: str, url: str, **kwargs: object) -> requests.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise UpstreamError(f"Request to FHIR server failed: {exc}") from exc

        if not response.ok:
            detail = response_body(response)
            response.close()
            logger.error("%s %s returned %s: %s", method, url, response.status_code, detail)
            raise UpstreamError(
                f"FHIR server returned HTTP {response.status_code}",
                detail=detail,
                upstream_status=response.status_code,
            )
        return response


def response_body(response: requests.Response) -> object:
    """Decoded JSON body, the raw text when it is not JSON, or None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
