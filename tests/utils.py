"""Various test helper methods"""

import json
import os
import tempfile
import unittest
from unittest import mock

import httpx
import respx

from fhirdash import fhir


class AsyncTestCase(unittest.IsolatedAsyncioTestCase):
    """
    Test case to hold some common code (suitable for async *OR* sync tests)
    """

    def setUp(self):
        super().setUp()

        # It's so common to want to see more than the tiny default fragment.
        # So we just enable this across the board.
        self.maxDiff = None

    def make_tempdir(self) -> str:
        """Creates a temporary dir that will be automatically cleaned up"""
        tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(tempdir.cleanup)
        return tempdir.name

    def write_file(self, name: str, contents: str) -> str:
        """Writes a file into a fresh temporary dir and returns its path"""
        path = os.path.join(self.make_tempdir(), name)
        with open(path, "w", encoding="utf8") as f:
            f.write(contents)
        return path

    def patch(self, *args, **kwargs) -> mock.Mock:
        """Syntactic sugar to ease making a mock over a test's lifecycle, without decorators"""
        patcher = mock.patch(*args, **kwargs)
        self.addCleanup(patcher.stop)
        return patcher.start()


class FhirClientMixin(unittest.TestCase):
    """Mixin that provides a realistic FhirClient against a mocked server"""

    def setUp(self):
        super().setUp()

        self.fhir_base = "http://localhost:9999/fhir"
        self.fhir_bearer = "1234567890"  # the provided oauth bearer token
        self.fhir_api_key = "my-api-key"

        # Unlike the router default, tests here may define routes they never hit
        self.respx_mock = respx.MockRouter(assert_all_called=False)
        self.addCleanup(self.respx_mock.stop)
        self.respx_mock.start()

    def mock_metadata(self, **kwargs) -> respx.Route:
        """Serves a basic CapabilityStatement at /metadata"""
        statement = {
            "resourceType": "CapabilityStatement",
            "status": "active",
            "publisher": "Test Publisher",
            "fhirVersion": "4.0.1",
            "implementation": {"url": self.fhir_base},
            "software": {"name": "Test"},
        }
        statement.update(kwargs)
        return self.respx_mock.get(f"{self.fhir_base}/metadata").respond(json=statement)

    def fhir_config(self, **kwargs) -> fhir.FhirConfig:
        kwargs.setdefault("base_url", self.fhir_base)
        return fhir.FhirConfig(**kwargs)

    def fhir_client(self, **kwargs) -> fhir.FhirClient:
        return fhir.FhirClient(self.fhir_config(**kwargs))


def make_bundle(*resources: dict, total: int | None = None) -> dict:
    bundle = {
        "resourceType": "Bundle",
        "id": "search-results",
        "type": "searchset",
        "entry": [{"resource": resource} for resource in resources],
    }
    if total is not None:
        bundle["total"] = total
    return bundle


def make_patient(patient_id: str = "P1", **kwargs) -> dict:
    patient = {
        "resourceType": "Patient",
        "id": patient_id,
        "name": [{"given": ["Jane", "Q"], "family": "Doe"}],
        "identifier": [
            {"system": "http://hospital.example.org/mrn", "value": "MRN-1"},
            {"system": "http://hl7.org/fhir/sid/us-ssn", "value": "999-99-9999"},
        ],
        "birthDate": "1980-02-13",
        "gender": "female",
    }
    patient.update(kwargs)
    return patient


def make_response(status_code=200, json_payload=None, text=None, reason=None, headers=None):
    """
    Makes a fake respx response for ease of testing.

    Usually you'll want to use respx.get(...) etc directly.
    But if you want to control the body or reason phrase precisely, this helps.
    """
    headers = dict(headers or {})
    headers.setdefault(
        "Content-Type", "application/fhir+json" if json_payload else "text/plain; charset=utf-8"
    )
    json_payload = json.dumps(json_payload) if json_payload else None
    body = (json_payload or text or "").encode("utf8")
    return respx.MockResponse(
        status_code=status_code,
        content=body,
        extensions=reason and {"reason_phrase": reason.encode("utf8")},
        headers=headers,
        request=httpx.Request("GET", "fake_request_url"),
    )
