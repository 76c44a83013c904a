"""FHIR utility methods"""

import datetime
import enum
import urllib.parse
from collections.abc import Mapping

UNKNOWN_PATIENT = "Unknown Patient"


class ResourceType(enum.StrEnum):
    """The resource types this client knows how to talk about"""

    CONDITION = "Condition"
    ENCOUNTER = "Encounter"
    OBSERVATION = "Observation"
    PATIENT = "Patient"
    PROCEDURE = "Procedure"


###############################################################################
# URL building
###############################################################################


def clean_params(params: Mapping[str, str | None] | None) -> dict[str, str]:
    """Drops any parameters without a real value, keeping their order"""
    return {
        key: str(value)
        for key, value in (params or {}).items()
        if value is not None and value != ""
    }


def build_url(base_url: str, path: str, params: Mapping[str, str | None] | None = None) -> str:
    """
    Joins a FHIR base URL, a resource path, and search parameters into one URL.

    Examples:
      - ("https://host/r4/", "Patient", {"name": "Smith"}) -> https://host/r4/Patient?name=Smith
      - ("https://host/r4", "Patient/123") -> https://host/r4/Patient/123

    Parameters with a None or empty value are left out entirely.
    """
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    query = urllib.parse.urlencode(clean_params(params))
    if query:
        url += f"?{query}"

    return url


###############################################################################
# Standard FHIR References are ResourceType/id
###############################################################################


def ref_resource(resource_type: str | None, resource_id: str) -> dict:
    """
    Reference the FHIR proper way
    :param resource_type: Name of resource, like "Patient"
    :param resource_id: ID for resource
    :return: FHIRReference as Resource/$id
    """
    if not resource_id:
        raise ValueError("Missing resource ID")
    return {"reference": f"{resource_type}/{resource_id}" if resource_type else resource_id}


######################################################################################################################
#
# Field parsing & display
#
######################################################################################################################


def parse_datetime(value: str | None) -> datetime.datetime | None:
    """
    Converts FHIR instant/dateTime/date types into a Python format.

    - This tries to be very graceful - any errors will result in a None return.
    - Missing month/day fields are treated as the earliest possible date (i.e. '1')

    CAUTION: Returned datetime might be naive - which makes more sense for dates without a time.
             FHIR says any field with hours/minutes SHALL have a timezone.
             But fields that are just dates SHALL NOT have a timezone.
    """
    if not value:
        return None

    try:
        # Handle partial dates like "1980-12" (which FHIR allows, but fromisoformat can't handle)
        pieces = value.split("-")
        if len(pieces) == 1:
            return datetime.datetime(int(pieces[0]), 1, 1)  # note: naive datetime
        elif len(pieces) == 2:
            return datetime.datetime(int(pieces[0]), int(pieces[1]), 1)  # note: naive datetime

        return datetime.datetime.fromisoformat(value)
    except ValueError:
        return None


def format_fhir_date(value: str) -> str:
    """Formats a FHIR date for display in the current locale, or returns it untouched"""
    parsed = parse_datetime(value)
    return parsed.strftime("%x") if parsed else value


def format_fhir_datetime(value: str) -> str:
    """Formats a FHIR dateTime for display in the current locale, or returns it untouched"""
    parsed = parse_datetime(value)
    return parsed.strftime("%c") if parsed else value


def get_patient_display_name(patient: dict) -> str:
    """
    Returns a human name for a Patient, like "John Jacob Smith".

    Only the first name entry is considered.
    """
    names = patient.get("name") or []
    if not names:
        return UNKNOWN_PATIENT

    name = names[0]
    given = " ".join(name.get("given") or [])
    family = name.get("family") or ""
    return f"{given} {family}".strip()


def get_patient_identifier(patient: dict, system: str | None = None) -> str | None:
    """Returns the first business identifier for a Patient, optionally from a given system"""
    identifiers = patient.get("identifier") or []

    if system:
        for identifier in identifiers:
            if identifier.get("system") == system:
                return identifier.get("value")
        return None

    return identifiers[0].get("value") if identifiers else None


def summarize_capability(statement: dict) -> dict[str, str | None]:
    """Picks out the parts of a CapabilityStatement worth showing to a user"""
    implementation = statement.get("implementation") or {}
    software = statement.get("software") or {}
    return {
        "publisher": statement.get("publisher"),
        "fhirVersion": statement.get("fhirVersion"),
        "status": statement.get("status"),
        "implementation": implementation.get("url"),
        "software": software.get("name"),
    }
