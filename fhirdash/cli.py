"""The command line interface to fhirdash"""

import argparse
import asyncio
import enum
import logging
import sys
from collections.abc import Awaitable, Callable

import rich.console
import rich.logging
import rich.table

from fhirdash import cli_utils, common, errors, fhir


class Command(enum.Enum):
    """Subcommand strings"""

    CONDITIONS = "conditions"
    CONNECT = "connect"
    ENCOUNTERS = "encounters"
    METADATA = "metadata"
    OBSERVATIONS = "observations"
    PATIENT = "patient"
    PATIENTS = "patients"
    PROCEDURES = "procedures"

    # Why isn't this part of Enum directly...?
    @classmethod
    def values(cls):
        return [e.value for e in cls]


def get_subcommand(argv: list[str]) -> str | None:
    """
    Determines which subcommand was requested by the given command line.

    Python's argparse has no good way of setting a default sub-parser.
    (i.e. one that parses the command line if no sub parser subcommand is specified)
    So instead, this method inspects the first positional argument.
    If it's a recognized command, we return it. Else None.
    """
    for i, arg in enumerate(argv):
        if arg in Command.values():
            return argv.pop(i)  # remove it to make later parsers' jobs easier
        elif not arg.startswith("-"):
            # first positional arg did not match a known command, assume default command
            return None


###############################################################################
#
# Subcommands
#
###############################################################################


async def connect(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    result = await client.test_connection()
    if not result.success:
        errors.fatal(f"Connection failed: {result.message}", errors.CONNECTION_FAILED)

    console = rich.console.Console()
    console.print(result.message, style="bold green", highlight=False)

    table = rich.table.Table("Field", "Value", show_header=False)
    for field, value in fhir.summarize_capability(result.capability or {}).items():
        if value:
            table.add_row(field, value)
    console.print(table)


async def metadata(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    common.print_json(await client.get_capability_statement())


async def patients(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    bundle = await client.search_patients(cli_utils.parse_params(args.params))
    if args.json:
        common.print_json(bundle)
    else:
        common.print_patient_table(bundle)


async def patient(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    common.print_json(await client.get_patient(args.id))


async def conditions(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    params = cli_utils.parse_params(args.params)
    common.print_json(await client.get_patient_conditions(args.patient_id, params))


async def encounters(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    common.print_json(await client.search_encounters(cli_utils.parse_params(args.params)))


async def procedures(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    common.print_json(await client.search_procedures(cli_utils.parse_params(args.params)))


async def observations(client: fhir.FhirClient, args: argparse.Namespace) -> None:
    params = cli_utils.parse_params(args.params)
    common.print_json(await client.get_patient_observations(args.patient_id, params))


Runner = Callable[[fhir.FhirClient, argparse.Namespace], Awaitable[None]]


def define_parser(parser: argparse.ArgumentParser, subcommand: Command) -> Runner:
    """Adds the arguments for a subcommand and returns the method that runs it"""
    parser.usage = "%(prog)s [OPTION]..."

    match subcommand:
        case Command.METADATA:
            parser.description = "Print the server's CapabilityStatement."
            run_method = metadata
        case Command.PATIENTS:
            parser.description = "Search for patients."
            cli_utils.add_params(parser)
            parser.add_argument("--json", action="store_true", help="print the raw search Bundle")
            run_method = patients
        case Command.PATIENT:
            parser.description = "Print a single patient."
            parser.add_argument("id", metavar="PATIENT_ID")
            run_method = patient
        case Command.CONDITIONS:
            parser.description = "Search for a patient's conditions."
            parser.add_argument("patient_id", metavar="PATIENT_ID")
            cli_utils.add_params(parser)
            run_method = conditions
        case Command.ENCOUNTERS:
            parser.description = "Search for encounters (needs _id, patient, or subject)."
            cli_utils.add_params(parser)
            run_method = encounters
        case Command.PROCEDURES:
            parser.description = "Search for procedures (needs _id, patient, or subject)."
            cli_utils.add_params(parser)
            run_method = procedures
        case Command.OBSERVATIONS:
            parser.description = "Search for a patient's observations."
            parser.add_argument("patient_id", metavar="PATIENT_ID")
            cli_utils.add_params(parser)
            run_method = observations
        case _:
            parser.description = "Test the connection to a FHIR server."
            run_method = connect

    cli_utils.add_server(parser)
    cli_utils.add_auth(parser)
    cli_utils.add_debugging(parser)
    return run_method


async def main(argv: list[str]) -> None:
    # Use RichHandler for logging because it plays nicer with our other rich output.
    # But also turn off all the complex bits - we just want the message.
    logging.basicConfig(
        format="%(message)s",
        handlers=[rich.logging.RichHandler(show_time=False, show_level=False, show_path=False)],
    )

    subcommand = get_subcommand(argv)

    prog = "fhirdash"
    if subcommand:
        prog += f" {subcommand}"  # to make --help look nicer
    parser = argparse.ArgumentParser(prog=prog)

    command = Command(subcommand) if subcommand else Command.CONNECT
    run_method = define_parser(parser, command)
    if not subcommand:
        # Add a note about other subcommands we offer, and tell argparse not to wrap our formatting
        parser.formatter_class = argparse.RawDescriptionHelpFormatter
        parser.description += "\n\nother commands available:\n"
        parser.description += "\n".join(f"  {value}" for value in Command.values())

    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = cli_utils.make_config(args)
    async with fhir.FhirClient(config) as client:
        try:
            await run_method(client, args)
        except errors.FhirError as exc:
            errors.fatal(str(exc), errors.exit_code(exc.kind))


def main_cli():
    asyncio.run(main(sys.argv[1:]))  # pragma: no cover


if __name__ == "__main__":
    main_cli()  # pragma: no cover
