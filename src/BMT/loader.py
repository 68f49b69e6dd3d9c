import typing

import pandas as pd

from .codec import RecordReader, open_text
from .person import Person

# One column per Person field, genes spread over five positional columns
DATABASE_COLUMNS = ["name", "id", "gene_1", "gene_2", "gene_3", "gene_4", "gene_5"]


def records_as_table(records: typing.Iterable[Person]) -> pd.DataFrame:
    """
    Lay records out as a DataFrame:
      - one row per record, in the given order
      - columns from DATABASE_COLUMNS
    """
    rows = [[record.name, record.id, *record.genes] for record in records]
    return pd.DataFrame(rows, columns=DATABASE_COLUMNS)


def load_database_as_table(database_path: str) -> pd.DataFrame:
    """
    Read a unified database (either layout) into a DataFrame.
    Reading stops at the first malformed record, as the merge and the donor search do.
    """
    with open_text(database_path) as handle:
        return records_as_table(RecordReader(handle, label=database_path))


def export_donors(donors: typing.Sequence[Person], output_path: str) -> None:
    # CSV keeps the padding-free values; the fixed-width layout is for the database only
    records_as_table(donors).to_csv(output_path, index=False)
