"""HTTP routes. Each route maps to exactly one ResourceGateway operation."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from ..errors import InvalidRequestError
from ..fhir.gateway import ResourceGateway
from .envelope import reported_as, success


logger = logging.getLogger(__name__)

BULK_DOWNLOAD_FILENAME = "bulk_data.ndjson"


class UploadUrlRequest(BaseModel):
    """Body of ``POST /upload-url``."""

    documentUrl: str | None = None
    patientId: str | None = None
    encounterId: str | None = None


def build_router(
    gateway: ResourceGateway,
    default_patient_id: str,
    chunk_size: int = 64 * 1024,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> JSONResponse:
        return success("ok")

    # --- Patient -------------------------------------------------------

    @router.get("/patient")
    def read_default_patient() -> JSONResponse:
        with reported_as("Error fetching data"):
            data = gateway.read_patient(default_patient_id)
        return success("Data fetched successfully", data)

    @router.get("/patient/{patient_id}")
    def read_patient(patient_id: str) -> JSONResponse:
        with reported_as("Error fetching patient"):
            data = gateway.read_patient(patient_id)
        return success("Patient retrieved successfully", data)

    @router.post("/patient-match")
    def match_patient(parameters: dict[str, Any] = Body(...)) -> JSONResponse:
        logger.info("Forwarding Patient $match request")
        with reported_as("Error matching patient"):
            data = gateway.match_patient(parameters)
        return success("Patient match results retrieved successfully", data)

    @router.get("/patient-search")
    def search_patients(request: Request) -> JSONResponse:
        with reported_as("Error searching patient"):
            data = gateway.search_patients(request.url.query)
        return success("Patient search results retrieved successfully", data)

    # --- Appointment ---------------------------------------------------

    @router.get("/appointments")
    def search_appointments(request: Request) -> JSONResponse:
        with reported_as("Error retrieving appointments"):
            data = gateway.search_appointments(request.url.query)
        return success("Appointment search results retrieved successfully", data)

    @router.get("/scheduled-surgery/{appointment_id}")
    def read_scheduled_surgery(appointment_id: str) -> JSONResponse:
        with reported_as("Error retrieving scheduled surgery appointment"):
            data = gateway.read_appointment(appointment_id)
        return success("Scheduled surgery appointment retrieved successfully", data)

    @router.post("/appointment-find")
    def find_appointments(parameters: dict[str, Any] = Body(...)) -> JSONResponse:
        with reported_as("Error finding appointment slots"):
            data = gateway.find_appointments(parameters)
        return success("Appointment slots retrieved successfully", data)

    # --- Encounter / Observation ---------------------------------------

    @router.get("/encounters")
    def search_encounters(request: Request) -> JSONResponse:
        with reported_as("Error searching encounters"):
            data = gateway.search_encounters(request.url.query)
        return success("Encounter search results retrieved successfully", data)

    @router.get("/encounter/{encounter_id}")
    def read_encounter(encounter_id: str) -> JSONResponse:
        with reported_as("Error retrieving encounter"):
            data = gateway.read_encounter(encounter_id)
        return success("Encounter retrieved successfully", data)

    @router.post("/observation")
    def create_observation(observation: dict[str, Any] = Body(...)) -> JSONResponse:
        with reported_as("Error creating observation"):
            created = gateway.create_observation(observation)
        return success(
            "Observation created successfully",
            created.resource,
            status_code=201,
            location=created.location,
        )

    # --- DocumentReference ---------------------------------------------

    @router.post("/upload-url")
    def upload_url(body: UploadUrlRequest) -> JSONResponse:
        with reported_as("Error uploading document URL"):
            if not body.documentUrl or not body.patientId:
                raise InvalidRequestError("documentUrl and patientId are required")
            document_id = gateway.upload_document_url(
                body.documentUrl, body.patientId, body.encounterId
            )
        return success("Document URL stored successfully", documentId=document_id)

    @router.get("/document/{document_id}")
    def read_document(document_id: str) -> JSONResponse:
        with reported_as("Error retrieving document"):
            document_url = gateway.resolve_document_url(document_id)
        return success("Document URL retrieved successfully", documentUrl=document_url)

    # --- Bulk export ---------------------------------------------------

    @router.get("/bulk-export")
    def bulk_export(
        group_id: str | None = Query(default=None, alias="groupId"),
        types: str | None = Query(default=None),
    ) -> JSONResponse:
        with reported_as("Error initiating bulk export"):
            if not group_id:
                raise InvalidRequestError("Missing groupId parameter")
            status_url = gateway.start_bulk_export(group_id, types)
        return success("Bulk data export initiated", statusUrl=status_url)

    @router.get("/bulk-status")
    def bulk_status(status_url: str | None = Query(default=None, alias="statusUrl")) -> JSONResponse:
        with reported_as("Error checking export status"):
            if not status_url:
                raise InvalidRequestError("Missing statusUrl parameter")
            status = gateway.bulk_export_status(status_url)
        if status.in_progress:
            return success("Export in progress", inProgress=True, progress=status.progress)
        return success("Export status retrieved", status.manifest, inProgress=False)

    @router.get("/bulk-download")
    def bulk_download(file_url: str | None = Query(default=None, alias="fileUrl")) -> StreamingResponse:
        with reported_as("Error downloading bulk data"):
            if not file_url:
                raise InvalidRequestError("Missing fileUrl parameter")
            upstream = gateway.open_bulk_file(file_url)
        return StreamingResponse(
            upstream.iter_content(chunk_size=chunk_size),
            media_type=upstream.headers.get("Content-Type", "application/fhir+ndjson"),
            headers={"Content-Disposition": f'attachment; filename="{BULK_DOWNLOAD_FILENAME}"'},
            background=BackgroundTask(upstream.close),
        )

    return router
