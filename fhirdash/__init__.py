"""FHIR R4 resource client for clinical dashboards"""

__version__ = "1.0.0"
