"""Support for talking to FHIR servers & handling FHIR resources"""

from .fhir_client import ConnectionResult, FhirClient, FhirConfig
from .fhir_utils import (
    ResourceType,
    build_url,
    clean_params,
    format_fhir_date,
    format_fhir_datetime,
    get_patient_display_name,
    get_patient_identifier,
    parse_datetime,
    ref_resource,
    summarize_capability,
)
