"""Exception classes and error handling"""

import enum
import sys
from typing import NoReturn

import httpx
import rich.console
import rich.padding

# Error return codes, mostly just distinguished for the benefit of tests.
# These start at 10 just to leave some room for future use.
ARGS_INVALID = 10
FHIR_URL_MISSING = 11
CONNECTION_FAILED = 12
PARAMETER_MISSING = 13
SERVER_UNREACHABLE = 14
SERVER_REJECTED = 15
SERVER_RESPONSE_INVALID = 16


class ErrorKind(enum.Enum):
    """How a FHIR request failed"""

    VALIDATION = "validation"  # required parameter missing, nothing was sent
    TRANSPORT = "transport"  # request never completed (DNS, refused connection, bad URL)
    FHIR_PROTOCOL = "fhir-protocol"  # server answered with an OperationOutcome
    MALFORMED_RESPONSE = "malformed-response"  # error status without an OperationOutcome
    DECODE = "decode"  # success status, but the body was not JSON


class FhirError(Exception):
    """Any failure from a FHIR client operation"""

    kind: ErrorKind

    def __init__(self, message: str, response: httpx.Response | None = None):
        super().__init__(message)
        self.message = message
        self.response = response


class ValidationError(FhirError):
    kind = ErrorKind.VALIDATION


class TransportError(FhirError):
    kind = ErrorKind.TRANSPORT


class FhirProtocolError(FhirError):
    kind = ErrorKind.FHIR_PROTOCOL

    def __init__(
        self, message: str, response: httpx.Response | None = None, outcome: dict | None = None
    ):
        super().__init__(message, response)
        self.outcome = outcome


class MalformedResponseError(FhirError):
    kind = ErrorKind.MALFORMED_RESPONSE


class DecodeError(FhirError):
    kind = ErrorKind.DECODE


_ERROR_CLASSES = {
    cls.kind: cls
    for cls in (
        ValidationError,
        TransportError,
        FhirProtocolError,
        MalformedResponseError,
        DecodeError,
    )
}

_EXIT_CODES = {
    ErrorKind.VALIDATION: PARAMETER_MISSING,
    ErrorKind.TRANSPORT: SERVER_UNREACHABLE,
    ErrorKind.FHIR_PROTOCOL: SERVER_REJECTED,
    ErrorKind.MALFORMED_RESPONSE: SERVER_RESPONSE_INVALID,
    ErrorKind.DECODE: SERVER_RESPONSE_INVALID,
}


def error_class(kind: ErrorKind) -> type[FhirError]:
    return _ERROR_CLASSES[kind]


def exit_code(kind: ErrorKind) -> int:
    return _EXIT_CODES[kind]


def fatal(message: str, status: int, extra: str = "") -> NoReturn:
    """Convenience method to exit the program with a user-friendly error message a test-friendly status code"""
    stderr = rich.console.Console(stderr=True)
    stderr.print(message, style="bold red", highlight=False)
    if extra:
        stderr.print(rich.padding.Padding.indent(extra, 2), highlight=False)
    sys.exit(status)  # raises a SystemExit exception
