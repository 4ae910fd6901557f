"""Row synthesis for a table's generated columns."""

import logging
from typing import Iterator, List

from .exceptions import DataGenerationError, UnsupportedDatatypeError
from .generator import DataTypeGenerator
from .models import TableCollection


logger = logging.getLogger(__name__)


class RowSynthesizer:
    """Produces rows of literals, one value per column in collection order.

    Values are column-local: each column's generator sees only the column's
    datatype, never sibling values.
    """

    def __init__(self, generator: DataTypeGenerator):
        self.generator = generator

    def build_row(self, collection: TableCollection) -> List[str]:
        """Build a single row for the collection.

        Raises:
            UnsupportedDatatypeError: a column's datatype has no generator.
            DataGenerationError: the generator failed for any other reason.
        """
        table = collection.table.qualified_name
        row = []
        for column in collection.columns:
            try:
                value = self.generator.build(column.datatype)
            except UnsupportedDatatypeError as e:
                raise UnsupportedDatatypeError(e.datatype, table=table, column=column.name) from e
            except Exception as e:
                raise DataGenerationError(table, column.name, e) from e
            row.append(str(value))
        return row

    def iter_rows(self, collection: TableCollection, count: int) -> Iterator[List[str]]:
        """Lazily yield ``count`` fresh rows; stops at the first failure."""
        for _ in range(count):
            yield self.build_row(collection)
