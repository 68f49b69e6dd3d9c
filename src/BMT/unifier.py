"""
Database unification.

Merges the collection-unit files, each already sorted by name, into one
name-sorted donor database without duplicate identifiers.
"""

from __future__ import annotations

import abc
import contextlib
import logging
import os
import typing

from dataclasses import dataclass, field
from stairval.notepad import Notepad

from .codec import RecordReader, format_record, open_text
from .person import Person

logger = logging.getLogger(__name__)

# Unit files are numbered from 1: "<root>1.txt", "<root>2.txt", ...
UNIT_FILENAME_TEMPLATE = "{root}{index}.txt"


@dataclass
class UnifySummary:
    """
    Outcome of a single merge.

    Attributes:
        written: Number of records written to the database.
        duplicates: Number of records dropped because their id was already written.
        malformed_units: Labels of the units that ended on a malformed record.
    """

    written: int = 0
    duplicates: int = 0
    malformed_units: list[str] = field(default_factory=list)


@dataclass
class _UnitCursor:
    """The record currently held for one unit; None once the unit is exhausted."""

    index: int
    reader: RecordReader
    current: typing.Optional[Person] = None

    def advance(self) -> None:
        self.current = self.reader.read()


class DatabaseUnifier(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def unify(
            self,
            units: typing.Sequence[typing.TextIO],
            sink: typing.TextIO,
            notepad: Notepad,
            labels: typing.Optional[typing.Sequence[str]] = None,
    ) -> UnifySummary:
        # write the merged database to `sink`
        raise NotImplementedError


class DefaultUnifier(DatabaseUnifier):
    def __init__(self, legacy_layout: bool = False):
        """
        - False: one record per line, a single space between all fields
        - True : byte-compatible with the legacy database files (see `_write`)
        """
        self.legacy_layout = legacy_layout

    def unify(
            self,
            units: typing.Sequence[typing.TextIO],
            sink: typing.TextIO,
            notepad: Notepad,
            labels: typing.Optional[typing.Sequence[str]] = None,
    ) -> UnifySummary:
        """
        Process:
        1) prime one current record per unit
        2) repeatedly pick the unit holding the smallest name (earlier unit wins ties)
        3) write its record unless the id was written before (first occurrence wins)
        4) advance that unit; a unit that runs out or turns malformed drops out
        5) stop when every unit is exhausted
        """
        if labels is None:
            labels = [f"unit {i + 1}" for i in range(len(units))]
        logger.info("Unifying %d units", len(units))

        summary = UnifySummary()
        cursors = [
            _UnitCursor(index=i, reader=RecordReader(stream, label=labels[i]))
            for i, stream in enumerate(units)
        ]
        for cursor in cursors:
            cursor.advance()
            if cursor.current is None:
                self._retire(cursor, notepad, summary)

        written_ids: set[str] = set()
        last_index: typing.Optional[int] = None

        while True:
            winner = self._smallest(cursors)
            if winner is None:
                break

            record = winner.current
            if record.id in written_ids:
                logger.debug("Dropping duplicate id %r from %s", record.id, winner.reader.label)
                summary.duplicates += 1
            else:
                switched = last_index is not None and winner.index != last_index
                self._write(sink, record, switched)
                written_ids.add(record.id)
                summary.written += 1
            last_index = winner.index

            winner.advance()
            if winner.current is None:
                self._retire(winner, notepad, summary)

        logger.info(
            "Wrote %d records, dropped %d duplicates", summary.written, summary.duplicates
        )
        return summary

    @staticmethod
    def _smallest(cursors: typing.Sequence[_UnitCursor]) -> typing.Optional[_UnitCursor]:
        smallest = None
        for cursor in cursors:
            if cursor.current is None:
                continue
            # strict "<" keeps the earlier unit on ties
            if smallest is None or cursor.current.name < smallest.current.name:
                smallest = cursor
        return smallest

    @staticmethod
    def _retire(cursor: _UnitCursor, notepad: Notepad, summary: UnifySummary) -> None:
        reader = cursor.reader
        logger.debug("%s exhausted", reader.label)
        if reader.malformed is None:
            return
        line_number, text = reader.malformed
        notepad.add_warning(
            f"Unit {reader.label!r}, line {line_number}: malformed record {text!r}; "
            f"treating unit as exhausted"
        )
        summary.malformed_units.append(reader.label)

    def _write(self, sink: typing.TextIO, record: Person, switched: bool) -> None:
        if not self.legacy_layout:
            sink.write(format_record(record) + "\n")
            return
        # Legacy layout: a run of records from one unit shares a line; switching
        # units starts a new line whose first record omits the space before the id.
        if switched:
            sink.write("\n")
        sink.write(format_record(record, compact=switched))


def unit_file_paths(root_name: str, count: int) -> list[str]:
    return [
        UNIT_FILENAME_TEMPLATE.format(root=root_name, index=i)
        for i in range(1, count + 1)
    ]


def unify_unit_files(
        unit_paths: typing.Sequence[str],
        database_path: str,
        notepad: Notepad,
        unifier: typing.Optional[DatabaseUnifier] = None,
) -> UnifySummary:
    """
    Open every unit, then the database, and run the merge.

    Raises StreamOpenError for the first file that cannot be opened; no database
    file is created when a unit is missing. A merge that fails midway removes
    the partial database before re-raising.
    """
    if unifier is None:
        unifier = DefaultUnifier()

    with contextlib.ExitStack() as stack:
        units = [stack.enter_context(open_text(path)) for path in unit_paths]
        sink = stack.enter_context(open_text(database_path, "w"))

        logger.info("Creating database %s", database_path)
        try:
            return unifier.unify(units, sink, notepad, labels=list(unit_paths))
        except Exception:
            sink.close()
            os.remove(database_path)
            logger.error("Merge failed, removed partial database %s", database_path)
            raise
