"""
Command‑line interface for the BMT donor toolkit.
Unifies numbered collection-unit files into one donor database and searches it
for donors compatible with a patient's gene profile.
"""

import click
import json
import logging
import sys
import typing

from collections import namedtuple
from stairval.notepad import create_notepad

import pandas as pd

from .codec import StreamOpenError
from .loader import export_donors, load_database_as_table
from .matcher import find_potential_donors_in_file
from .person import Person
from .unifier import DefaultUnifier, UnifySummary, unify_unit_files, unit_file_paths

AuditEntry = namedtuple("AuditEntry", ["step", "database", "message", "level"])

LEGACY_LAYOUT_ENVVAR = "BMT_LEGACY_LAYOUT"


@click.group()
@click.option(
    "--verbose-logging",
    is_flag=True,
    help="Also emit debug logs to stderr",
)
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def main(verbose_logging: bool = False, log_file_path: typing.Optional[str] = None):
    """BMT: unify bone marrow donor units and find compatible donors."""
    _configure_logging(verbose_logging, log_file_path)


@main.command(name="unify")
@click.option(
    "-r",
    "--root-name",
    required=True,
    type=str,
    help="units root name; unit files are read as <root>1.txt, <root>2.txt, …",
)
@click.option(
    "-n",
    "--units",
    "unit_count",
    required=True,
    type=click.IntRange(min=1),
    help="number of collection units",
)
@click.option(
    "-o",
    "--database",
    "database_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="path of the new database file",
)
@click.option(
    "--legacy-layout/--uniform-layout",
    default=False,
    envvar=LEGACY_LAYOUT_ENVVAR,
    help="Write the database byte-compatible with legacy files (default: uniform, one record per line).",
)
def unify(root_name: str, unit_count: int, database_path: str, legacy_layout: bool):
    """
    Merge the name-sorted unit files into one name-sorted database.
    A donor id seen in an earlier unit wins over later copies.
    """
    notepad = create_notepad("unify")
    summary = _run_unify(
        unit_file_paths(root_name, unit_count), database_path, legacy_layout, notepad
    )
    _report_issues(notepad)
    _echo_unify_summary(summary, database_path)


@main.command(name="find-donors")
@click.option(
    "-d",
    "--database",
    "database_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="path to the unified database",
)
@click.option(
    "-g",
    "--genes",
    required=True,
    nargs=5,
    type=str,
    help="the patient's five gene codes, in order",
)
@click.option(
    "-m",
    "--min-match",
    required=True,
    type=click.IntRange(min=0),
    help="minimal number of matching genes",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    help="also write the potential donors to this CSV file",
)
def find_donors(
    database_path: str,
    genes: tuple[str, ...],
    min_match: int,
    output_path: typing.Optional[str] = None,
):
    """
    List the donors whose genes equal the patient's at MIN_MATCH or more positions.
    """
    patient = _build_patient(genes)
    notepad = create_notepad("find-donors")
    potential_donors = _run_find(database_path, patient, min_match, notepad)
    _report_issues(notepad)

    _print_potential_donors(potential_donors)
    if output_path:
        export_donors(potential_donors, output_path)
        click.echo(f"Saved {len(potential_donors)} potential donors to {output_path}")


@main.command(name="audit-database")
@click.option(
    "-d",
    "--database",
    "database_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="path to the unified database",
)
@click.option("-r", "--raw-json", is_flag=True, help="Print the audit entries as JSON")
def audit_database_command(database_path: str, raw_json: bool):
    """
    Check a database: record count, name ordering and id uniqueness.
    """
    try:
        table = load_database_as_table(database_path)
    except StreamOpenError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    entries = audit_database(table, database_path)
    if raw_json:
        click.echo(json.dumps([entry._asdict() for entry in entries], indent=2))
        return

    click.echo(f"{'STEP':20}  {'LEVEL':7}  {'DATABASE':20}  MESSAGE")
    for entry in entries:
        line = f"{entry.step:20}  {entry.level:7}  {entry.database:20}  {entry.message}"
        if entry.level == "error":
            click.echo(click.style(line, fg="red"))
        else:
            click.echo(line)


@main.command(name="menu")
@click.option(
    "--legacy-layout/--uniform-layout",
    default=False,
    envvar=LEGACY_LAYOUT_ENVVAR,
    help="Layout used by 'Unify Database' (default: uniform).",
)
def menu(legacy_layout: bool):
    """
    Interactive main menu: unify units, search donors, print the last search.
    """
    potential_donors: list[Person] = []

    while True:
        click.echo("\n******* Main Menu *******")
        click.echo("1. Unify Database")
        click.echo("2. Find Potential Donors")
        click.echo("3. Print The List of Potential Donors")
        click.echo("4. Exit")
        choice = click.prompt("Enter Your Selection", type=int)

        if choice == 1:
            root_name = click.prompt("Enter units root name")
            unit_count = click.prompt("Enter the number of units", type=click.IntRange(min=1))
            database_path = click.prompt("Enter the new database name")
            notepad = create_notepad("unify")
            summary = _run_unify(
                unit_file_paths(root_name, unit_count), database_path, legacy_layout, notepad
            )
            _report_issues(notepad)
            _echo_unify_summary(summary, database_path)
        elif choice == 2:
            click.echo("Enter Genes DNA Sequences:")
            genes = [click.prompt(f"Gene {i}") for i in range(1, 6)]
            min_match = click.prompt("Enter Minimal Match", type=click.IntRange(min=0))
            database_path = click.prompt("Enter The Database Filename")
            try:
                patient = _build_patient(genes)
            except click.BadParameter as e:
                click.echo(f"Error: {e.message}", err=True)
                continue
            notepad = create_notepad("find-donors")
            potential_donors = _run_find(database_path, patient, min_match, notepad)
            _report_issues(notepad)
            click.echo(f"Found {len(potential_donors)} potential donors")
        elif choice == 3:
            if potential_donors:
                _print_potential_donors(potential_donors)
            else:
                click.echo("No potential donors found or the list is empty.")
        elif choice == 4:
            click.echo("Exiting program.")
            break
        else:
            click.echo("Invalid selection. Try again.")


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _build_patient(genes: typing.Sequence[str]) -> Person:
    try:
        return Person.from_genes(genes, name="patient")
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="genes") from e


def _run_unify(
    unit_paths: list[str], database_path: str, legacy_layout: bool, notepad
) -> UnifySummary:
    # an unreadable unit or database is fatal, as in the original tool
    try:
        return unify_unit_files(
            unit_paths, database_path, notepad, DefaultUnifier(legacy_layout=legacy_layout)
        )
    except StreamOpenError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _run_find(database_path: str, patient: Person, min_match: int, notepad) -> list[Person]:
    try:
        return find_potential_donors_in_file(database_path, patient, min_match, notepad)
    except StreamOpenError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _echo_unify_summary(summary: UnifySummary, database_path: str) -> None:
    click.echo(f"Wrote {summary.written} records to {database_path}")
    click.echo(f"Dropped {summary.duplicates} duplicate records")


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found while reading records:")
        for err in notepad.errors():
            click.echo(f"- {err}")
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found while reading records:")
        for w in notepad.warnings():
            click.echo(f"- {w}")


def _print_potential_donors(potential_donors: typing.Sequence[Person]) -> None:
    if not potential_donors:
        click.echo("No potential donors found.")
        return

    click.echo("Potential Donors Details\n------------------------")
    for position, donor in enumerate(potential_donors, start=1):
        click.echo(f"{position}. {donor.name:<30} {donor.id}")


def audit_database(table: pd.DataFrame, database: str) -> list[AuditEntry]:
    """
    Run lightweight audits on a loaded database:
      - record count
      - names in non-decreasing order
      - no identifier written twice
    """
    entries: list[AuditEntry] = []

    # Step 1: count
    entries.append(AuditEntry(
        step="count-records",
        database=database,
        message=f"{len(table)} records",
        level="info",
    ))

    # Step 2: ordering
    names = table["name"].tolist()
    out_of_order = [
        row for row in range(1, len(names)) if names[row] < names[row - 1]
    ]
    if out_of_order:
        row = out_of_order[0]
        entries.append(AuditEntry(
            step="check-order",
            database=database,
            message=(f"{len(out_of_order)} records out of order, first {names[row]!r} "
                     f"(record {row + 1}) after {names[row - 1]!r}"),
            level="error",
        ))
    else:
        entries.append(AuditEntry(
            step="check-order",
            database=database,
            message="names sorted",
            level="info",
        ))

    # Step 3: uniqueness
    duplicated = sorted(set(table.loc[table["id"].duplicated(), "id"]))
    if duplicated:
        entries.append(AuditEntry(
            step="check-unique-ids",
            database=database,
            message=f"duplicate ids: {', '.join(duplicated)}",
            level="error",
        ))
    else:
        entries.append(AuditEntry(
            step="check-unique-ids",
            database=database,
            message="ids unique",
            level="info",
        ))
    return entries


if __name__ == "__main__":
    main()
