"""Unit tests for the authenticated FHIR HTTP client."""

from __future__ import annotations

import pytest
import requests
import requests_mock as req_mock

from epic_gateway.errors import UpstreamError
from epic_gateway.fhir.fhir_client import FHIRClient, response_body


BASE_URL = "https://fhir.example.com/r4"
SAMPLE_OBSERVATION = {"resourceType": "Observation", "status": "final"}


class TestFHIRClientPost:
    def test_post_resource_sends_to_correct_url(self) -> None:
        with req_mock.Mocker() as m:
            m.post(f"{BASE_URL}/Observation", json={"id": "obs-001"}, status_code=201)
            client = FHIRClient(BASE_URL)
            response = client.post_resource("Observation", SAMPLE_OBSERVATION, "tok")
        assert response.status_code == 201

    def test_post_resource_sets_fhir_content_type_and_bearer(self) -> None:
        with req_mock.Mocker() as m:
            m.post(f"{BASE_URL}/Observation", json={}, status_code=201)
            FHIRClient(BASE_URL).post_resource("Observation", SAMPLE_OBSERVATION, "tok")
            assert m.last_request.headers["Content-Type"] == "application/fhir+json"
            assert m.last_request.headers["Authorization"] == "Bearer tok"
            assert m.last_request.json() == SAMPLE_OBSERVATION

    def test_post_resource_custom_headers_merged(self) -> None:
        with req_mock.Mocker() as m:
            m.post(f"{BASE_URL}/DocumentReference", json={}, status_code=201)
            FHIRClient(BASE_URL).post_resource(
                "DocumentReference",
                {"resourceType": "DocumentReference"},
                "tok",
                headers={"Content-Type": "application/json"},
            )
            assert m.last_request.headers["Content-Type"] == "application/json"
            assert m.last_request.headers["Authorization"] == "Bearer tok"

    def test_post_resource_strips_trailing_slash(self) -> None:
        with req_mock.Mocker() as m:
            m.post(f"{BASE_URL}/Patient/$match", json={}, status_code=200)
            client = FHIRClient(BASE_URL + "/")  # trailing slash
            response = client.post_resource("Patient/$match", {"resourceType": "Parameters"}, "tok")
        assert response.status_code == 200


class TestFHIRClientGet:
    def test_get_resource_correct_url(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Patient/p-001", json={"resourceType": "Patient", "id": "p-001"})
            response = FHIRClient(BASE_URL).get_resource("Patient", "p-001", "tok")
        assert response.status_code == 200
        assert response.json()["id"] == "p-001"

    def test_get_resource_accept_header(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Encounter/e-001", json={})
            FHIRClient(BASE_URL).get_resource("Encounter", "e-001", "tok")
            assert m.last_request.headers["Accept"] == "application/fhir+json"

    def test_search_forwards_query_verbatim(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Patient", json={"resourceType": "Bundle"})
            FHIRClient(BASE_URL).search("Patient", "given=Camila&family=Lopez", "tok")
            assert m.last_request.url == f"{BASE_URL}/Patient?given=Camila&family=Lopez"

    def test_search_without_query(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Encounter", json={})
            FHIRClient(BASE_URL).search("Encounter", "", "tok")
            assert m.last_request.url == f"{BASE_URL}/Encounter"

    def test_absolute_url_is_not_joined(self) -> None:
        status_url = "https://bulk.example.com/status/job-1"
        with req_mock.Mocker() as m:
            m.get(status_url, status_code=202)
            response = FHIRClient(BASE_URL).get(status_url, "tok")
        assert response.status_code == 202


class TestFHIRClientErrors:
    def test_non_2xx_raises_upstream_error_with_body(self) -> None:
        outcome = {"resourceType": "OperationOutcome", "issue": [{"severity": "error"}]}
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Patient/missing", status_code=404, json=outcome)
            with pytest.raises(UpstreamError) as exc_info:
                FHIRClient(BASE_URL).get_resource("Patient", "missing", "tok")
        assert exc_info.value.upstream_status == 404
        assert exc_info.value.detail == outcome

    def test_connection_error_raises_upstream_error(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Patient/p-001", exc=requests.exceptions.ConnectionError)
            with pytest.raises(UpstreamError, match="Request to FHIR server failed"):
                FHIRClient(BASE_URL).get_resource("Patient", "p-001", "tok")

    def test_timeout_is_passed_to_session(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/Patient/p-001", json={})
            FHIRClient(BASE_URL, timeout=7.5).get_resource("Patient", "p-001", "tok")
            assert m.last_request.timeout == 7.5


class TestResponseBody:
    def test_empty_body_is_none(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/x", status_code=202, text="")
            assert response_body(requests.get(f"{BASE_URL}/x")) is None

    def test_text_body(self) -> None:
        with req_mock.Mocker() as m:
            m.get(f"{BASE_URL}/x", text="plain")
            assert response_body(requests.get(f"{BASE_URL}/x")) == "plain"
