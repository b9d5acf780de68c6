"""Resource gateway: one method per supported Epic FHIR interaction.

Each operation validates its own inputs, obtains a brand-new access token
from the token exchange client, and issues its downstream call(s). Query
strings and request bodies are forwarded verbatim; Epic's own validation
errors come back as UpstreamError with the upstream body attached.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import BaseModel

from ..auth.token_client import TokenExchangeClient
from ..config import Settings
from ..errors import DataShapeError, InvalidRequestError
from .document_reference import DocumentReferenceBuilder, document_id_from_location
from .fhir_client import FHIRClient, response_body


logger = logging.getLogger(__name__)

DEFAULT_EXPORT_TYPES = "Patient,Observation,Encounter"


class CreatedResource(BaseModel):
    """Result of a FHIR create: the echoed resource (if any) and its Location."""

    location: str | None = None
    resource: Any = None


class ExportStatus(BaseModel):
    """Bulk export job status as reported by the status URL."""

    in_progress: bool
    progress: str | None = None
    manifest: Any = None


class ResourceGateway:
    """Issue Epic FHIR calls on behalf of the router."""

    def __init__(
        self,
        settings: Settings,
        token_client: TokenExchangeClient,
        session: requests.Session | None = None,
    ) -> None:
        session = session or requests.Session()
        self._tokens = token_client
        self._r4 = FHIRClient(settings.r4_base_url, session=session, timeout=settings.timeout)
        self._stu3 = FHIRClient(settings.stu3_base_url, session=session, timeout=settings.timeout)

    # ------------------------------------------------------------------
    # Patient
    # ------------------------------------------------------------------

    def read_patient(self, patient_id: str) -> Any:
        _require(patient_id=patient_id)
        return response_body(self._r4.get_resource("Patient", patient_id, self._token()))

    def search_patients(self, query: str) -> Any:
        return response_body(self._r4.search("Patient", query, self._token()))

    def match_patient(self, parameters: dict) -> Any:
        """POST a FHIR Parameters resource to ``Patient/$match``."""
        return response_body(self._r4.post_resource("Patient/$match", parameters, self._token()))

    # ------------------------------------------------------------------
    # Appointment
    # ------------------------------------------------------------------

    def search_appointments(self, query: str) -> Any:
        return response_body(self._r4.search("Appointment", query, self._token()))

    def read_appointment(self, appointment_id: str) -> Any:
        """Appointment.Read, used by Epic for scheduled surgeries."""
        _require(appointment_id=appointment_id)
        return response_body(self._r4.get_resource("Appointment", appointment_id, self._token()))

    def find_appointments(self, parameters: dict) -> Any:
        """``Appointment/$find`` lives on Epic's STU3 API, not R4."""
        return response_body(self._stu3.post_resource("Appointment/$find", parameters, self._token()))

    # ------------------------------------------------------------------
    # Encounter / Observation
    # ------------------------------------------------------------------

    def search_encounters(self, query: str) -> Any:
        return response_body(self._r4.search("Encounter", query, self._token()))

    def read_encounter(self, encounter_id: str) -> Any:
        _require(encounter_id=encounter_id)
        return response_body(self._r4.get_resource("Encounter", encounter_id, self._token()))

    def create_observation(self, observation: dict) -> CreatedResource:
        response = self._r4.post_resource("Observation", observation, self._token())
        return CreatedResource(
            location=response.headers.get("Location"),
            resource=response_body(response),
        )

    # ------------------------------------------------------------------
    # DocumentReference / Binary
    # ------------------------------------------------------------------

    def upload_document_url(
        self,
        document_url: str,
        patient_id: str,
        encounter_id: str | None = None,
    ) -> str:
        """Store ``document_url`` as a DocumentReference and return its logical ID.

        Raises:
            InvalidRequestError: if document_url or patient_id is missing.
            DataShapeError: if Epic's response has no usable Location header.
        """
        _require(document_url=document_url, patient_id=patient_id)
        doc_ref = DocumentReferenceBuilder.from_url(document_url, patient_id, encounter_id)

        response = self._r4.post_resource(
            "DocumentReference",
            doc_ref,
            self._token(),
            headers={"Content-Type": "application/json"},
        )
        document_id = document_id_from_location(response.headers.get("Location"))
        logger.info("Created DocumentReference %s for Patient/%s", document_id, patient_id)
        return document_id

    def resolve_document_url(self, document_id: str) -> str:
        """Read a DocumentReference, follow its Binary, and decode the stored URL.

        Both calls share one access token.

        Raises:
            DataShapeError: (404) if the DocumentReference has no Binary
                reference, or (500) if the Binary has no ``data``.
        """
        _require(document_id=document_id)
        token = self._token()

        doc_ref = response_body(self._r4.get_resource("DocumentReference", document_id, token))
        if not isinstance(doc_ref, dict):
            raise DataShapeError("DocumentReference response is not a JSON object", detail=doc_ref)
        binary_ref = DocumentReferenceBuilder.binary_reference(doc_ref)

        logger.info("Fetching Binary data from %s", self._r4.url_for(binary_ref))
        binary = response_body(self._r4.get(binary_ref, token))
        return DocumentReferenceBuilder.decode_binary(binary)

    # ------------------------------------------------------------------
    # Bulk data export
    # ------------------------------------------------------------------

    def start_bulk_export(self, group_id: str, types: str | None = None) -> str:
        """Kick off ``Group/{id}/$export`` and return the status URL to poll.

        Epic reports the status URL in the ``Content-Location`` header.
        """
        _require(group_id=group_id)
        resource_types = types or DEFAULT_EXPORT_TYPES
        response = self._r4.get(
            f"Group/{group_id}/$export?_type={resource_types}",
            self._token(),
            headers={"Prefer": "respond-async"},
        )
        status_url = response.headers.get("Content-Location")
        if not status_url:
            raise DataShapeError("Epic did not return a bulk export status URL")
        logger.info("Bulk export for Group/%s started, status at %s", group_id, status_url)
        return status_url

    def bulk_export_status(self, status_url: str) -> ExportStatus:
        """Poll an export job; HTTP 202 means still running, 200 carries the manifest."""
        _require(status_url=status_url)
        response = self._r4.get(status_url, self._token(), headers={"Accept": "application/json"})
        if response.status_code == 202:
            return ExportStatus(in_progress=True, progress=response.headers.get("X-Progress"))
        return ExportStatus(in_progress=False, manifest=response_body(response))

    def open_bulk_file(self, file_url: str) -> requests.Response:
        """Open a streamed GET on an export output file.

        The caller owns the returned response and must close it.
        """
        _require(file_url=file_url)
        return self._r4.get(
            file_url,
            self._token(),
            headers={"Accept": "application/fhir+ndjson"},
            stream=True,
        )

    def _token(self) -> str:
        return self._tokens.get_access_token()


def _require(**values: str | None) -> None:
    missing = [name for name, value in values.items() if not value or not str(value).strip()]
    if missing:
        raise InvalidRequestError(f"Missing required parameter(s): {', '.join(missing)}")
