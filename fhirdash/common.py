"""Utility methods"""

import json
import logging
from typing import Any

import rich.box
import rich.console
import rich.table

from fhirdash import fhir


def read_text(path: str) -> str:
    """
    Reads data from the given path, in text format
    :param path: filesystem path
    :return: the file contents
    """
    logging.debug("read_text() %s", path)

    with open(path, encoding="utf8") as f:
        return f.read()


def print_json(data: Any) -> None:
    rich.console.Console().print_json(json.dumps(data))


def bundle_resources(bundle: dict) -> list[dict]:
    """Returns the resources held in a search Bundle (first page only)"""
    return [entry["resource"] for entry in bundle.get("entry") or [] if "resource" in entry]


def print_patient_table(bundle: dict) -> None:
    """Prints a Bundle of Patients as a human-friendly table"""
    table = rich.table.Table(
        "ID",
        "Name",
        "Identifier",
        "Birth Date",
        "Gender",
        box=rich.box.SIMPLE,
    )
    for patient in bundle_resources(bundle):
        birth_date = patient.get("birthDate")
        table.add_row(
            patient.get("id", ""),
            fhir.get_patient_display_name(patient),
            fhir.get_patient_identifier(patient) or "",
            fhir.format_fhir_date(birth_date) if birth_date else "",
            patient.get("gender", ""),
        )

    console = rich.console.Console()
    console.print(table)
    total = bundle.get("total")
    if total is not None:
        console.print(f"Showing {table.row_count} of {total} matching patients.", highlight=False)
