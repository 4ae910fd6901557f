"""Bulk loading of synthesized rows and default-value loading of sequence tables."""

import csv
import io
import logging
from typing import Any, List, Sequence

import psycopg2
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from .database import DatabaseConnection
from .exceptions import (
    CommitError, SequenceLoadError, UnsupportedDatatypeError
)
from .models import TableCollection, TableDescriptor, TableLoadResult, quote_identifier
from .synthesizer import RowSynthesizer


logger = logging.getLogger(__name__)

PROGRESS_BAR_MSG = "Mocking Table {}"


def encode_rows(rows: Sequence[Sequence[str]]) -> str:
    """Serialize rows as CSV with every field quoted.

    Quoting keeps delimiters, quotes and newlines inside values intact, and a
    quoted empty string stays an empty string rather than NULL.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=",", quotechar='"', doublequote=True,
                        quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def build_copy_statement(table: TableDescriptor, column_names: Sequence[str]) -> str:
    """COPY statement whose column list matches the payload field order."""
    columns = ", ".join(quote_identifier(name) for name in column_names)
    return f"COPY {table.qualified_name} ({columns}) FROM STDIN WITH (FORMAT csv)"


class BulkCopyCommitter:
    """Commits encoded rows to a table through COPY FROM STDIN."""

    def commit(self, table: TableDescriptor, column_names: Sequence[str],
               rows: Sequence[Sequence[str]], connection: Any) -> int:
        """Copy rows into the table over a DBAPI connection and commit.

        Raises:
            CommitError: the server or driver rejected the copy.
        """
        if not rows:
            return 0

        statement = build_copy_statement(table, column_names)
        payload = encode_rows(rows)

        try:
            cursor = connection.cursor()
            try:
                cursor.copy_expert(statement, io.StringIO(payload))
            finally:
                cursor.close()
            connection.commit()
        except psycopg2.Error as e:
            logger.debug(f"Table: {table}")
            logger.debug(f"Copy Statement: {statement}")
            logger.debug(f"Data: {payload}")
            raise CommitError(
                str(table), statement, f"{len(rows)} rows, {len(payload)} characters", e
            ) from e

        return len(rows)


class TableLoader:
    """Synthesizes and commits the configured number of rows for one table at a time."""

    def __init__(self, db_connection: DatabaseConnection, synthesizer: RowSynthesizer,
                 rows: int, batch_size: int = 1000,
                 committer: BulkCopyCommitter = None, show_progress: bool = True):
        self.db_connection = db_connection
        self.synthesizer = synthesizer
        self.rows = rows
        self.batch_size = batch_size
        self.committer = committer or BulkCopyCommitter()
        self.show_progress = show_progress

    def load(self, collection: TableCollection) -> TableLoadResult:
        """Load one table.

        An unsupported datatype stops row generation for the table. Rows built
        before the failing row are still committed and the table is marked
        skipped. Any other failure propagates and aborts the run. With a
        batch_size of 1 each row is committed before the next one is built.
        """
        table = collection.table
        column_names = collection.column_names
        result = TableLoadResult(table=table)
        pending: List[List[str]] = []

        logger.debug(f"Building and loading mock data to the table {table}")
        bar = tqdm(total=self.rows, desc=PROGRESS_BAR_MSG.format(table),
                   disable=not self.show_progress)
        try:
            with self.db_connection.raw_connection() as connection:
                try:
                    for row in self.synthesizer.iter_rows(collection, self.rows):
                        pending.append(row)
                        if len(pending) >= self.batch_size:
                            result.rows_committed += self._flush(table, column_names, pending, connection, bar)
                except UnsupportedDatatypeError as e:
                    logger.debug(f"Table {table} skipped: {e}")
                    result.skipped = True
                    result.reason = str(e)

                if pending:
                    result.rows_committed += self._flush(table, column_names, pending, connection, bar)
        finally:
            bar.close()

        return result

    def _flush(self, table: TableDescriptor, column_names: List[str],
               pending: List[List[str]], connection: Any, bar: tqdm) -> int:
        committed = self.committer.commit(table, column_names, pending, connection)
        pending.clear()
        bar.update(committed)
        return committed


class SequenceTableLoader:
    """Populates tables whose only column is sequence-backed."""

    def __init__(self, db_connection: DatabaseConnection, rows: int, show_progress: bool = True):
        self.db_connection = db_connection
        self.rows = rows
        self.show_progress = show_progress

    def load(self, table: TableDescriptor) -> int:
        """Insert default-value rows, each in its own transaction.

        Raises:
            SequenceLoadError: an insert failed.
        """
        logger.debug(f"Loading data for one column serial data type table {table}")
        statement = f"INSERT INTO {table.qualified_name} DEFAULT VALUES"

        for _ in tqdm(range(self.rows), desc=PROGRESS_BAR_MSG.format(table),
                      disable=not self.show_progress):
            try:
                self.db_connection.execute_statement(statement)
            except SQLAlchemyError as e:
                raise SequenceLoadError(str(table), e) from e

        return self.rows
