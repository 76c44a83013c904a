"""HTTP client that talks to a FHIR server"""

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from fhirdash import errors, http
from fhirdash.fhir import fhir_utils
from fhirdash.fhir.fhir_utils import ResourceType

FHIR_JSON = "application/fhir+json"
API_KEY_HEADER = "x-api-key"

# At least one of these must be given to search for patients
PATIENT_SEARCH_PARAMS = (
    "_id",
    "identifier",
    "name",
    "given",
    "family",
    "birthdate",
    "phone",
    "email",
    "address-postalcode",
)
# At least one of these must be given to search for encounters or procedures
REFERENCE_SEARCH_PARAMS = ("_id", "patient", "subject")
# At least one of these must be given to search for a patient's conditions
PATIENT_REFERENCE_PARAMS = ("patient", "subject")

Params = Mapping[str, str | None]


@dataclasses.dataclass(frozen=True, kw_only=True)
class FhirConfig:
    """
    Connection settings for a FHIR server.

    Only base_url is required. Nothing is validated here - a bad URL will fail at request time.
    """

    base_url: str
    tenant_id: str | None = None
    api_key: str | None = None
    access_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


@dataclasses.dataclass(frozen=True)
class ConnectionResult:
    """Outcome of a connection test, meant for showing to a user"""

    success: bool
    message: str
    capability: dict | None = None


def _require_any(params: Mapping[str, Any], required: Iterable[str]) -> None:
    required = list(required)
    if not any(params.get(name) for name in required):
        raise errors.ValidationError(
            f"At least one search parameter is required: {', '.join(required)}"
        )


def _require_id(resource_type: str, resource_id: str) -> None:
    if not resource_id:
        raise errors.ValidationError(f"A {resource_type} ID is required")


class FhirClient:
    """
    Issues typed requests against a FHIR R4 server.

    Use this as a context manager (like you would an httpx.AsyncClient instance).

    Every operation besides test_connection() raises a FhirError subclass on failure.
    Inspect its `kind` attribute to learn what went wrong.
    """

    def __init__(self, config: FhirConfig):
        """
        Initialize a FhirClient context manager.

        :param config: connection settings, which can be swapped out later with reconfigure()
        """
        self._config = config
        self._session: httpx.AsyncClient | None = None

    async def __aenter__(self):
        # No client-side timeout - the caller (or the transport) decides how long to wait
        self._session = httpx.AsyncClient(timeout=None)
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        if self._session:
            await self._session.aclose()
            self._session = None

    @property
    def config(self) -> FhirConfig:
        return self._config

    def reconfigure(self, config: FhirConfig) -> None:
        """Replaces the whole configuration. Later requests only see the new one."""
        self._config = config

    ###################################################################################################################
    #
    # Patients
    #
    ###################################################################################################################

    async def search_patients(self, params: Params) -> dict:
        search_params = fhir_utils.clean_params(params)
        _require_any(search_params, PATIENT_SEARCH_PARAMS)
        return await self.request("GET", ResourceType.PATIENT, params=search_params)

    async def get_patient(self, patient_id: str) -> dict:
        return await self._read(ResourceType.PATIENT, patient_id)

    async def update_patient(self, patient_id: str, patient: Mapping[str, Any]) -> dict:
        """
        Replaces a Patient on the server.

        The resourceType and id fields are always set from our arguments,
        even if the given patient had its own (possibly conflicting) values.
        """
        _require_id(ResourceType.PATIENT, patient_id)
        body = {**patient, "resourceType": ResourceType.PATIENT.value, "id": patient_id}
        return await self.request("PUT", f"{ResourceType.PATIENT}/{patient_id}", body=body)

    ###################################################################################################################
    #
    # Clinical resources
    #
    ###################################################################################################################

    async def get_patient_conditions(
        self, patient_id: str, extra_params: Params | None = None
    ) -> dict:
        search_params = fhir_utils.clean_params({"patient": patient_id, **(extra_params or {})})
        _require_any(search_params, PATIENT_REFERENCE_PARAMS)
        return await self.request("GET", ResourceType.CONDITION, params=search_params)

    async def get_condition(self, condition_id: str) -> dict:
        return await self._read(ResourceType.CONDITION, condition_id)

    async def create_condition(self, condition: Mapping[str, Any]) -> dict:
        return await self._create(ResourceType.CONDITION, condition)

    async def search_encounters(self, params: Params) -> dict:
        return await self._search_by_reference(ResourceType.ENCOUNTER, params)

    async def get_patient_encounters(
        self, patient_id: str, extra_params: Params | None = None
    ) -> dict:
        return await self._search_for_patient(ResourceType.ENCOUNTER, patient_id, extra_params)

    async def get_encounter(self, encounter_id: str) -> dict:
        return await self._read(ResourceType.ENCOUNTER, encounter_id)

    async def search_procedures(self, params: Params) -> dict:
        return await self._search_by_reference(ResourceType.PROCEDURE, params)

    async def get_patient_procedures(self, patient_id: str) -> dict:
        return await self._search_for_patient(ResourceType.PROCEDURE, patient_id)

    async def get_procedure(self, procedure_id: str) -> dict:
        return await self._read(ResourceType.PROCEDURE, procedure_id)

    async def get_patient_observations(
        self, patient_id: str, extra_params: Params | None = None
    ) -> dict:
        return await self._search_for_patient(ResourceType.OBSERVATION, patient_id, extra_params)

    async def create_observation(self, observation: Mapping[str, Any]) -> dict:
        return await self._create(ResourceType.OBSERVATION, observation)

    ###################################################################################################################
    #
    # Server metadata
    #
    ###################################################################################################################

    async def get_capability_statement(self) -> dict:
        return await self.request("GET", "metadata")

    async def test_connection(self) -> ConnectionResult:
        """
        Checks whether we can talk to the server, by asking for its CapabilityStatement.

        Unlike every other operation, this never raises for a failed request.
        Any error is reported in the returned result instead.
        """
        try:
            capability = await self.get_capability_statement()
        except Exception as exc:
            logging.warning("Connection test against %s failed: %s", self._config.base_url, exc)
            return ConnectionResult(success=False, message=str(exc) or "Unknown connection error")

        publisher = capability.get("publisher") if isinstance(capability, dict) else None
        version = capability.get("fhirVersion") if isinstance(capability, dict) else None
        return ConnectionResult(
            success=True,
            message=f"Connected to {publisher or 'FHIR Server'} - {version or 'Unknown Version'}",
            capability=capability,
        )

    ###################################################################################################################
    #
    # Requests
    #
    ###################################################################################################################

    def make_headers(self, config: FhirConfig | None = None) -> dict[str, str]:
        config = config or self._config
        headers = {
            "Accept": FHIR_JSON,
            "Content-Type": FHIR_JSON,
        }
        # Both may be sent at once - we leave it to the server to decide which one it cares about
        if config.access_token:
            headers["Authorization"] = f"Bearer {config.access_token}"
        if config.api_key:
            headers[API_KEY_HEADER] = config.api_key
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Params | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Issues an HTTP request against the server and returns the decoded JSON response.

        :param method: HTTP method to issue
        :param path: path relative to the server base URL, like "Patient/123"
        :param params: search parameters, empty values are dropped
        :param body: JSON body to send
        :returns: the parsed JSON body of the response
        """
        if not self._session:
            raise RuntimeError("FhirClient must be used as a context manager")

        # Grab one config snapshot, in case we get reconfigured while this request is in flight
        config = self._config
        url = fhir_utils.build_url(config.base_url, str(path), params)
        headers = self.make_headers(config)

        kwargs = {}
        if body is not None:
            kwargs["json"] = dict(body)

        response = await http.request(self._session, method, url, headers=headers, **kwargs)
        return http.decode_json(response)

    ###################################################################################################################
    #
    # Helpers
    #
    ###################################################################################################################

    async def _read(self, resource_type: ResourceType, resource_id: str) -> dict:
        _require_id(resource_type, resource_id)
        return await self.request("GET", f"{resource_type}/{resource_id}")

    async def _create(self, resource_type: ResourceType, resource: Mapping[str, Any]) -> dict:
        body = {**resource, "resourceType": resource_type.value}
        return await self.request("POST", resource_type, body=body)

    async def _search_by_reference(self, resource_type: ResourceType, params: Params) -> dict:
        search_params = fhir_utils.clean_params(params)
        _require_any(search_params, REFERENCE_SEARCH_PARAMS)
        return await self.request("GET", resource_type, params=search_params)

    async def _search_for_patient(
        self, resource_type: ResourceType, patient_id: str, extra_params: Params | None = None
    ) -> dict:
        _require_id(ResourceType.PATIENT, patient_id)
        search_params = fhir_utils.clean_params({"patient": patient_id, **(extra_params or {})})
        return await self.request("GET", resource_type, params=search_params)
