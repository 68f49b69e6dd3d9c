"""
Person domain model.

Defines the Person class for donor and patient entries of a collection unit
or of the unified donor database.
"""

import re
from dataclasses import dataclass
from typing import Sequence

NAME_WIDTH = 30
ID_WIDTH = 9
GENE_WIDTH = 21
GENE_COUNT = 5

_TOKEN = re.compile(r"^\S+$")


def clean_name(name: str) -> str:
    """
    Drop everything from the first digit onward, then trim the trailing whitespace.

    Guards against stray digits glued onto names in the unit files,
    e.g. "John Doe 12" -> "John Doe".
    """
    match = re.match(r"[^0-9]*", name)
    return match.group(0).rstrip()


@dataclass(frozen=True)
class Person:
    """
    Represents a single donor (or patient) entry.

    Attributes:
        name: Free-text name, at most 30 characters.
        id: Identifier, at most 9 characters; the deduplication key of the database.
        genes: Exactly five gene codes, each at most 21 characters. Position matters.
    """

    name: str
    id: str
    genes: tuple[str, ...]

    def __post_init__(self):
        if not isinstance(self.genes, tuple):
            object.__setattr__(self, "genes", tuple(self.genes))

        if len(self.name) > NAME_WIDTH:
            raise ValueError(f"Name longer than {NAME_WIDTH} characters: {self.name!r}")

        if len(self.id) > ID_WIDTH or (self.id and not _TOKEN.match(self.id)):
            raise ValueError(f"Invalid ID: {self.id!r}")

        if len(self.genes) != GENE_COUNT:
            raise ValueError(
                f"Expected {GENE_COUNT} genes, got {len(self.genes)}"
            )
        for gene in self.genes:
            if not isinstance(gene, str) or not _TOKEN.match(gene) or len(gene) > GENE_WIDTH:
                raise ValueError(f"Invalid gene code: {gene!r}")

    @classmethod
    def from_genes(cls, genes: Sequence[str], name: str = "") -> "Person":
        """Build a query profile (a patient) from its five gene codes."""
        return cls(name=name, id="", genes=tuple(gene.strip() for gene in genes))


def count_gene_matches(donor: Person, patient: Person) -> int:
    # exact equality per position, no partial credit
    return sum(
        1
        for donor_gene, patient_gene in zip(donor.genes, patient.genes)
        if donor_gene == patient_gene
    )
