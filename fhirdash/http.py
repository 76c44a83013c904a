"""HTTP helper methods"""

import json
import logging
from typing import Any

import httpx

from fhirdash import errors

UNKNOWN_ISSUE = "Unknown error"


def _operation_outcome(body: str | None) -> dict | None:
    """Returns the parsed body if it is a usable OperationOutcome, else None"""
    if not body:
        return None

    try:
        parsed = json.loads(body)
    except ValueError:
        return None

    if (
        isinstance(parsed, dict)
        and parsed.get("resourceType") == "OperationOutcome"
        and isinstance(parsed.get("issue"), list)
    ):
        return parsed
    return None


def _issue_text(issue: Any) -> str:
    if not isinstance(issue, dict):
        return UNKNOWN_ISSUE
    details = issue.get("details")
    text = details.get("text") if isinstance(details, dict) else None
    text = text or issue.get("diagnostics")
    return str(text) if text else UNKNOWN_ISSUE


def classify_error_response(
    status_code: int, reason: str, body: str | None
) -> tuple[errors.ErrorKind, str]:
    """
    Decides what kind of failure an unsuccessful HTTP response represents.

    A FHIR server is supposed to describe its errors with an OperationOutcome.
    If it did, we join the text of every issue together as the message.
    Otherwise, we fall back to the status line plus whatever raw body the server gave us.

    :param status_code: HTTP status code of the response
    :param reason: HTTP reason phrase of the response
    :param body: response body as text, or None if it could not be read
    :returns: a tuple of (error kind, human-readable message)
    """
    status_line = f"HTTP {status_code}: {reason}"

    if body is None:
        return errors.ErrorKind.MALFORMED_RESPONSE, status_line

    outcome = _operation_outcome(body)
    if outcome is not None:
        message = ", ".join(_issue_text(issue) for issue in outcome["issue"])
        # An OperationOutcome with no issues tells us nothing, so at least give the status
        return errors.ErrorKind.FHIR_PROTOCOL, message or status_line

    if body:
        return errors.ErrorKind.MALFORMED_RESPONSE, f"{status_line}: {body}"
    return errors.ErrorKind.MALFORMED_RESPONSE, status_line


async def request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: dict | None = None,
    **kwargs,  # passed on to AsyncClient
) -> httpx.Response:
    """
    Issues a single HTTP request, with no retries.

    Will raise a FhirError subclass for any transport failure or unsuccessful status code.
    The returned response has already been fully read.

    :param client: Client to use
    :param method: HTTP method to issue
    :param url: URL to hit
    :param headers: optional header dictionary
    :returns: The response object
    """
    logging.debug("Making FHIR request to %s", url)

    try:
        request_obj = client.build_request(method, url, headers=headers, **kwargs)
        response = await client.send(request_obj, stream=True, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise errors.TransportError(str(exc) or type(exc).__name__) from exc

    try:
        if response.is_success:
            try:
                await response.aread()
            except httpx.HTTPError as exc:
                raise errors.TransportError(str(exc) or type(exc).__name__, response) from exc
            return response

        try:
            await response.aread()
            body = response.text
        except (httpx.HTTPError, httpx.StreamError):
            body = None

        kind, message = classify_error_response(response.status_code, response.reason_phrase, body)
        if kind == errors.ErrorKind.FHIR_PROTOCOL:
            raise errors.FhirProtocolError(message, response, outcome=_operation_outcome(body))
        raise errors.error_class(kind)(message, response)
    finally:
        await response.aclose()


def decode_json(response: httpx.Response) -> Any:
    """Parses a successful response body, raising DecodeError if it is not JSON"""
    try:
        return response.json()
    except ValueError as exc:  # covers both JSONDecodeError and UnicodeDecodeError
        raise errors.DecodeError(
            f'Could not parse response from "{response.request.url}" as JSON: {exc}', response
        ) from exc
