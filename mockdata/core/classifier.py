"""Split table columns into sequence-backed and generated columns."""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import (
    ClassificationResult, ColumnDescriptor, TableCollection, TableDescriptor
)


logger = logging.getLogger(__name__)

# Default expression prefix of a column fed by a sequence, e.g. nextval('t_id_seq'::regclass)
SEQUENCE_MARKER = "nextval"


def is_sequence_backed(column: ColumnDescriptor) -> bool:
    """Check whether the column's default takes the next value of a sequence."""
    if not column.default:
        return False
    return column.default.startswith(SEQUENCE_MARKER)


def classify_table(table: TableDescriptor,
                   columns: Sequence[ColumnDescriptor]) -> Tuple[Optional[TableCollection], bool]:
    """Classify one table's columns.

    Returns the table's collection of generated columns (None when no column
    needs a value) and whether the table holds a single sequence column.
    """
    if len(columns) == 1 and is_sequence_backed(columns[0]):
        logger.debug(f"Table {table} has a single sequence-backed column {columns[0].name}")
        return None, True

    generated = tuple(column for column in columns if not is_sequence_backed(column))
    if not generated:
        logger.debug(f"Table {table} has no columns to mock, ignoring it")
        return None, False

    return TableCollection(table=table, columns=generated), False


def classify_tables(tables: Iterable[Tuple[TableDescriptor, Sequence[ColumnDescriptor]]]) -> ClassificationResult:
    """Classify every table, keeping the input order."""
    collections: List[TableCollection] = []
    sequence_only: List[TableDescriptor] = []

    for table, columns in tables:
        collection, single_sequence = classify_table(table, columns)
        if single_sequence:
            sequence_only.append(table)
        elif collection is not None:
            collections.append(collection)

    return ClassificationResult(
        collections=tuple(collections),
        sequence_only_tables=tuple(sequence_only),
    )
