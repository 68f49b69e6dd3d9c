"""
Record codec for collection-unit files and the unified database.

High-level role in BMT:
- RecordReader pulls one Person at a time out of a text stream, so the
  merge never has to hold a whole unit in memory.
- format_record renders a Person as a fixed-width database entry.

Input layout (whitespace driven, one record after the other):

    <name up to the first digit><id> <gene1> <gene2> <gene3> <gene4> <gene5>

The name is at most 30 non-digit characters, the id at most 9 and every gene
at most 21 non-whitespace characters. Leading whitespace and blank lines are
skipped. Several records may share a line (the legacy database layout writes
them back-to-back), but a record never continues on the next line once its
name has started. A last gene at full width ends there even when the next
record's name follows without a space.
"""

from __future__ import annotations

import logging
import re
import typing

from .person import GENE_WIDTH, ID_WIDTH, NAME_WIDTH, Person, clean_name

logger = logging.getLogger(__name__)

# Name: every leading non-digit character, capped at the field width.
_NAME_FIELD = re.compile(rf"[^0-9]{{1,{NAME_WIDTH}}}")

# Id directly after the name (optionally space-separated), then five genes.
# A full-width last gene may be glued to the next record's name (legacy layout).
_TAIL_FIELDS = re.compile(
    rf"""
    [ \t]*(?P<id>\S{{1,{ID_WIDTH}}})(?=\s)
    [ \t]+(?P<gene_1>\S{{1,{GENE_WIDTH}}})(?=\s|$)
    [ \t]+(?P<gene_2>\S{{1,{GENE_WIDTH}}})(?=\s|$)
    [ \t]+(?P<gene_3>\S{{1,{GENE_WIDTH}}})(?=\s|$)
    [ \t]+(?P<gene_4>\S{{1,{GENE_WIDTH}}})(?=\s|$)
    [ \t]+(?P<gene_5>\S{{1,{GENE_WIDTH}}})(?=\s|$|(?<=\S{{{GENE_WIDTH}}}))
    """,
    re.VERBOSE,
)

# Undecodable bytes become U+FFFD instead of aborting the read.
DECODE_ERRORS = "replace"


class StreamOpenError(RuntimeError):
    """Raised when a unit, database or output file cannot be opened."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not open file {path}: {reason}")
        self.path = path


def open_text(path: str, mode: str = "r") -> typing.TextIO:
    """Open a unit or database file as UTF-8 text; raises StreamOpenError."""
    try:
        if "r" in mode:
            return open(path, mode, encoding="utf-8", errors=DECODE_ERRORS)
        return open(path, mode, encoding="utf-8")
    except OSError as e:
        raise StreamOpenError(path, e.strerror or str(e)) from e


class RecordReader:
    """
    Sequential reader of Person records.

    `read()` returns the next record, or None once the stream is exhausted or a
    malformed record is met. After a malformed record the reader stays
    exhausted and `malformed` holds `(line_number, text)` for diagnostics.
    """

    def __init__(self, stream: typing.TextIO, label: str = "<stream>"):
        self._stream = stream
        self._pending = ""
        self._exhausted = False
        self.label = label
        self.line_number = 0
        self.malformed: typing.Optional[tuple[int, str]] = None

    def __iter__(self) -> typing.Iterator[Person]:
        while True:
            record = self.read()
            if record is None:
                return
            yield record

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def read(self) -> typing.Optional[Person]:
        if self._exhausted:
            return None

        text = self._next_text()
        if text is None:
            self._exhausted = True
            return None

        record, rest = self._parse(text)
        if record is None:
            self._exhausted = True
            self.malformed = (self.line_number, text.rstrip())
            logger.warning(
                "%s, line %d: malformed record %r", self.label, self.line_number, text.rstrip()
            )
            return None

        self._pending = rest
        return record

    def _next_text(self) -> typing.Optional[str]:
        # skip whitespace, including blank lines and record separators
        text = self._pending.lstrip()
        while not text:
            line = self._stream.readline()
            if not line:
                return None
            self.line_number += 1
            text = line.lstrip()
        return text

    @staticmethod
    def _parse(text: str) -> tuple[typing.Optional[Person], str]:
        name_match = _NAME_FIELD.match(text)
        if not name_match:
            return None, text
        tail_match = _TAIL_FIELDS.match(text, name_match.end())
        if not tail_match:
            return None, text

        try:
            record = Person(
                name=clean_name(name_match.group(0)),
                id=tail_match.group("id"),
                genes=tuple(tail_match.group(f"gene_{i}") for i in range(1, 6)),
            )
        except ValueError:
            return None, text
        return record, text[tail_match.end():]


def format_record(person: Person, compact: bool = False) -> str:
    """
    Render a Person as a fixed-width database entry (no line terminator).

    With `compact=True` the separating space before the id is omitted, which is
    how the legacy layout writes the first record after switching units.
    """
    separator = "" if compact else " "
    genes = " ".join(f"{gene:<{GENE_WIDTH}}" for gene in person.genes)
    return f"{person.name:<{NAME_WIDTH}}{separator}{person.id:<{ID_WIDTH}} {genes}"
