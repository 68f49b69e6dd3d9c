"""
Donor compatibility search.

Scans a unified database and keeps every donor whose gene codes equal the
patient's at enough positions.
"""

import logging
import typing

from stairval.notepad import Notepad

from .codec import RecordReader, open_text
from .person import Person, count_gene_matches

logger = logging.getLogger(__name__)


def find_potential_donors(
    database: typing.TextIO,
    patient: Person,
    min_match: int,
    notepad: Notepad,
    label: str = "database",
) -> list[Person]:
    """
    Return the donors with at least `min_match` matching genes, in database order.

    A malformed record ends the scan; it is reported on the notepad as a warning.
    """
    if min_match < 0:
        raise ValueError(f"min_match must be a non-negative integer, got {min_match!r}")

    reader = RecordReader(database, label=label)
    donors = [
        donor for donor in reader if count_gene_matches(donor, patient) >= min_match
    ]

    if reader.malformed is not None:
        line_number, text = reader.malformed
        notepad.add_warning(
            f"Database {label!r}, line {line_number}: malformed record {text!r}; "
            f"remaining records were not searched"
        )
    logger.info("Found %d potential donors (min_match=%d)", len(donors), min_match)
    return donors


def find_potential_donors_in_file(
    database_path: str, patient: Person, min_match: int, notepad: Notepad
) -> list[Person]:
    with open_text(database_path) as handle:
        return find_potential_donors(handle, patient, min_match, notepad, label=database_path)
