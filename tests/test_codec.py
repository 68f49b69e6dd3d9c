"""
Tests for the record codec:
- RecordReader: whitespace-driven parsing, blank lines, malformed input, legacy lines
- format_record: fixed column widths and the compact variant
"""

import io

from BMT.codec import RecordReader, format_record
from BMT.person import Person


def read_all(text: str) -> tuple[list[Person], RecordReader]:
    reader = RecordReader(io.StringIO(text), label="sample")
    return list(reader), reader


def test_reads_one_record_per_line():
    records, reader = read_all("Alice 111 X X X X X\nCarol 333 Y Y Y Y Y\n")
    assert [(r.name, r.id) for r in records] == [("Alice", "111"), ("Carol", "333")]
    assert records[0].genes == ("X", "X", "X", "X", "X")
    assert reader.exhausted
    assert reader.malformed is None


def test_multi_word_names_and_blank_lines():
    text = "\n\n  Mary Ann Smith   42 AGCT CCGA TTAG GGCA ATAT\n\n\nZoe 7 A B C D E"
    records, reader = read_all(text)
    assert [r.name for r in records] == ["Mary Ann Smith", "Zoe"]
    assert records[1].genes == ("A", "B", "C", "D", "E")
    assert reader.malformed is None


def test_missing_gene_marks_reader_malformed():
    records, reader = read_all("Alice 111 X X X X X\nBob 222 Z Z Z Z\nCarol 333 Y Y Y Y Y\n")
    assert [r.name for r in records] == ["Alice"]
    assert reader.malformed == (2, "Bob 222 Z Z Z Z")
    # stays exhausted
    assert reader.read() is None


def test_overlong_gene_is_malformed():
    records, reader = read_all("Alice 111 " + "G" * 22 + " X X X X\n")
    assert records == []
    assert reader.malformed is not None


def test_last_gene_stops_at_field_width():
    """Like scanf's %21s: the 22nd character is left for the next record."""
    records, reader = read_all("Alice 111 X X X X " + "G" * 22 + "\n")
    assert [r.genes[4] for r in records] == ["G" * 21]
    assert reader.malformed == (1, "G")


def test_line_without_identifier_is_malformed():
    records, reader = read_all("Just a name\n")
    assert records == []
    assert reader.malformed == (1, "Just a name")


def test_empty_stream_is_exhausted_not_malformed():
    records, reader = read_all("")
    assert records == []
    assert reader.exhausted
    assert reader.malformed is None


def test_format_record_column_widths():
    person = Person(name="Alice", id="111", genes=("X", "X", "X", "X", "X"))
    line = format_record(person)
    assert line[:30] == "Alice".ljust(30)
    assert line[30] == " "
    assert line[31:40] == "111".ljust(9)
    assert line[40] == " "
    assert line[41:62] == "X".ljust(21)
    assert len(line) == 30 + 1 + 9 + 5 * 22


def test_format_record_compact_omits_space_before_id():
    person = Person(name="Alice", id="111", genes=("X", "X", "X", "X", "X"))
    line = format_record(person, compact=True)
    assert line[:39] == "Alice".ljust(30) + "111".ljust(9)
    assert len(line) == len(format_record(person)) - 1


def test_reads_legacy_layout_with_several_records_per_line():
    alice = Person(name="Alice", id="111", genes=("X",) * 5)
    abe = Person(name="Abe Lincoln", id="112", genes=("W",) * 5)
    bob = Person(name="Bob", id="222", genes=("Z",) * 5)
    text = format_record(alice) + format_record(abe) + "\n" + format_record(bob, compact=True)

    records, reader = read_all(text)
    assert records == [alice, abe, bob]
    assert reader.malformed is None


def test_reads_full_width_name_in_compact_layout():
    person = Person(name="N" * 30, id="123456789", genes=("A", "B", "C", "D", "E"))
    records, _ = read_all(format_record(person, compact=True) + "\n")
    assert records == [person]
