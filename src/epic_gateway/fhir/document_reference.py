"""FHIR R4 DocumentReference that stores an external document URL.

Epic keeps the URL itself, not the document bytes: the URL is base64-encoded
into a ``text/plain`` attachment. Reading it back means following the
attachment's ``Binary`` reference and decoding that resource's ``data``.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from typing import Any

from ..errors import DataShapeError


_LOINC_SYSTEM           = "http://loinc.org"
_LOINC_SCANNED_DOCUMENT = "11506-3"

NO_BINARY_REFERENCE = "No Binary reference found in DocumentReference"
NO_BINARY_DATA      = "Binary resource does not contain data"
NO_DOCUMENT_ID      = "Epic did not return a Document ID"


class DocumentReferenceBuilder:
    """Build DocumentReference dicts that point at an external document URL."""

    @staticmethod
    def from_url(
        document_url: str,
        patient_id: str,
        encounter_id: str | None = None,
        now: datetime | None = None,
    ) -> dict:
        """Build a DocumentReference whose attachment data is the base64 URL.

        Args:
            document_url: External location of the document.
            patient_id: FHIR Patient logical ID.
            encounter_id: Optional FHIR Encounter logical ID.
            now: Timestamp for ``date``. Defaults to the current UTC time.

        Returns:
            A FHIR R4 DocumentReference dict.

        Raises:
            ValueError: if document_url or patient_id are empty.
        """
        if not document_url or not document_url.strip():
            raise ValueError("document_url must not be empty")
        if not patient_id or not patient_id.strip():
            raise ValueError("patient_id must not be empty")

        timestamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

        doc_ref: dict[str, Any] = {
            "resourceType": "DocumentReference",
            "status":       "current",
            "type": {
                "coding": [{
                    "system":  _LOINC_SYSTEM,
                    "code":    _LOINC_SCANNED_DOCUMENT,
                    "display": "Scanned Document",
                }]
            },
            "subject": {"reference": f"Patient/{patient_id}"},
            "date":    timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "content": [{
                "attachment": {
                    "contentType": "text/plain",
                    "data":        encode_url(document_url),
                }
            }],
        }

        if encounter_id:
            doc_ref["context"] = {
                "encounter": [{"reference": f"Encounter/{encounter_id}"}]
            }

        return doc_ref

    @staticmethod
    def binary_reference(doc_ref: Any) -> str:
        """Return ``content[0].attachment.url`` (normally ``Binary/<id>``).

        Raises:
            DataShapeError: (404) if the DocumentReference has no attachment URL.
        """
        content = doc_ref.get("content") if isinstance(doc_ref, dict) else None
        first = content[0] if isinstance(content, list) and content else None
        attachment = first.get("attachment") if isinstance(first, dict) else None
        url = attachment.get("url") if isinstance(attachment, dict) else None
        if not isinstance(url, str) or not url:
            raise DataShapeError(NO_BINARY_REFERENCE, status_code=404)
        return url

    @staticmethod
    def decode_binary(binary: Any) -> str:
        """Decode a Binary resource's base64 ``data`` back into the document URL.

        Raises:
            DataShapeError: if ``data`` is absent or is not valid base64 text.
        """
        data = binary.get("data") if isinstance(binary, dict) else None
        if not data:
            raise DataShapeError(NO_BINARY_DATA, detail=binary)
        try:
            return base64.b64decode(data, validate=True).decode("utf-8")
        except (binascii.Error, TypeError, UnicodeDecodeError) as exc:
            raise DataShapeError(f"Binary data is not base64-encoded text: {exc}", detail=binary) from exc


def encode_url(document_url: str) -> str:
    return base64.b64encode(document_url.encode("utf-8")).decode("ascii")


def document_id_from_location(location: str | None) -> str:
    """Logical ID from a ``Location`` header such as ``.../DocumentReference/123``.

    Versioned locations (``.../DocumentReference/123/_history/1``) yield ``123``.

    Raises:
        DataShapeError: if the header is missing or has no ID segment.
    """
    segments = [s for s in (location or "").split("/") if s]
    if "_history" in segments:
        segments = segments[: segments.index("_history")]
    if not segments:
        raise DataShapeError(NO_DOCUMENT_ID)
    return segments[-1]

