"""Helper methods for CLI parsing."""

import argparse
import dataclasses
import json
import urllib.parse

from fhirdash import common, errors, fhir


@dataclasses.dataclass(frozen=True)
class Provider:
    """A known FHIR server, so that users don't have to remember its URL"""

    label: str
    base_url: str
    tenant_id: str | None = None


PROVIDERS = {
    "oracle": Provider(
        label="Oracle Health (Cerner) open sandbox",
        base_url="https://fhir-open.cerner.com/r4/ec2458f2-1e24-41c8-b71b-0e701af7583d",
        tenant_id="ec2458f2-1e24-41c8-b71b-0e701af7583d",
    ),
    "practice-fusion": Provider(
        label="Practice Fusion",
        base_url="https://api.practicefusion.com/fhir",
    ),
}


def add_server(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("server")
    group.add_argument("--fhir-url", metavar="URL", help="FHIR server base URL")
    group.add_argument(
        "--provider",
        choices=list(PROVIDERS),
        help="use a known server's URL and tenant (--fhir-url still takes priority)",
    )
    group.add_argument("--tenant-id", metavar="ID", help="tenant or sandbox identifier")


def add_auth(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("authentication")
    group.add_argument(
        "--bearer-token", metavar="PATH", help="token file for Bearer authentication"
    )
    group.add_argument("--api-key", metavar="PATH", help="file holding an API key")
    group.add_argument("--client-id", metavar="ID", help="OAuth client ID")
    group.add_argument(
        "--client-secret", metavar="PATH", help="file holding an OAuth client secret"
    )


def add_params(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--params",
        metavar="PARAMS",
        help='search parameters, as a JSON object or a query string (like "name=Smith&_count=5")',
    )


def add_debugging(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("debugging")
    group.add_argument("--verbose", action="store_true", help="show each request as it is made")


def parse_params(text: str | None) -> dict[str, str]:
    """Reads search parameters given as either a JSON object or a URL query string"""
    text = (text or "").strip()
    if not text:
        return {}

    try:
        if text.startswith("{"):
            parsed = json.loads(text)
            if not isinstance(parsed, dict):
                raise ValueError("not an object")
            return {str(key): str(value) for key, value in parsed.items() if value is not None}
        return dict(urllib.parse.parse_qsl(text, keep_blank_values=True, strict_parsing=True))
    except ValueError:
        errors.fatal(
            "Invalid parameters format. Use JSON object or query string format.",
            errors.ARGS_INVALID,
        )


def _read_secret(path: str | None) -> str | None:
    return common.read_text(path).strip() if path else None


def make_config(args: argparse.Namespace) -> fhir.FhirConfig:
    """
    Builds a FhirConfig from user input on the CLI.

    Secrets are given as file paths, to keep them out of shell history and process listings.
    """
    provider = PROVIDERS[args.provider] if args.provider else None

    base_url = args.fhir_url or (provider and provider.base_url)
    if not base_url:
        errors.fatal(
            "You must provide a FHIR server with --fhir-url or --provider.",
            errors.FHIR_URL_MISSING,
        )

    tenant_id = args.tenant_id
    if tenant_id is None and provider and not args.fhir_url:
        tenant_id = provider.tenant_id

    try:
        access_token = _read_secret(args.bearer_token)
        api_key = _read_secret(args.api_key)
        client_secret = _read_secret(args.client_secret)
    except OSError as exc:
        errors.fatal(str(exc), errors.ARGS_INVALID)

    return fhir.FhirConfig(
        base_url=base_url,
        tenant_id=tenant_id,
        api_key=api_key,
        access_token=access_token,
        client_id=args.client_id,
        client_secret=client_secret,
    )
