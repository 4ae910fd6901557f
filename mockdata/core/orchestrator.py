"""Mocking run: classify, relax constraints, load, restore and report."""

import logging
from typing import Callable, List, Optional, Sequence

from tqdm import tqdm

from .classifier import classify_tables
from .constraints import ConstraintManager
from .database import DatabaseConnection
from .exceptions import FatalMockError
from .generator import DataTypeGenerator
from .introspection import ColumnEnumerator, get_column_enumerator
from .loader import SequenceTableLoader, TableLoader
from .models import (
    ClassificationResult, MockConfig, MockResult, RunStatus, TableDescriptor
)
from .synthesizer import RowSynthesizer


logger = logging.getLogger(__name__)

PROGRAM_NAME = "mockdata"


class MockOrchestrator:
    """Drives one mocking run over a fixed list of tables.

    The run moves through entry, confirmation, classification, constraint
    removal, table loads, sequence-only loads, constraint restoration and the
    final report, never going back. A ``FatalMockError`` raised by any
    collaborator stops the run and is returned as an ``ABORTED`` result; the
    constraints of tables already processed are then left removed.
    """

    def __init__(self, db_connection: DatabaseConnection, config: MockConfig,
                 enumerator: Optional[ColumnEnumerator] = None,
                 table_loader: Optional[TableLoader] = None,
                 sequence_loader: Optional[SequenceTableLoader] = None,
                 constraint_manager: Optional[ConstraintManager] = None,
                 confirm: Optional[Callable[[], None]] = None):
        """Initialize the orchestrator.

        Args:
            db_connection: Connected database.
            config: Run options.
            enumerator: Column source; defaults to the one for ``config.dialect``.
            table_loader: Bulk loader; defaults to one backed by ``DataTypeGenerator``.
            sequence_loader: Loader for single sequence column tables.
            constraint_manager: Constraint lifecycle handler.
            confirm: Called before loading unless ``config.auto_confirm``. It may
                raise to stop the run; its outcome is not inspected here.
        """
        self.db_connection = db_connection
        self.config = config
        self.enumerator = enumerator or get_column_enumerator(config.dialect, db_connection)
        self.table_loader = table_loader or TableLoader(
            db_connection,
            RowSynthesizer(DataTypeGenerator(seed=config.seed)),
            rows=config.rows,
            batch_size=config.batch_size,
            show_progress=config.show_progress,
        )
        self.sequence_loader = sequence_loader or SequenceTableLoader(
            db_connection, rows=config.rows, show_progress=config.show_progress
        )
        self.constraint_manager = constraint_manager or ConstraintManager(
            db_connection, config.backup_dir
        )
        self.confirm = confirm

        self.skipped_tables: List[TableDescriptor] = []
        self.sequence_only_tables: List[TableDescriptor] = []

    def run(self, tables: Sequence[TableDescriptor]) -> MockResult:
        """Mock every table in the list."""
        self.skipped_tables = []
        self.sequence_only_tables = []

        total_tables = len(tables)
        if total_tables == 0:
            logger.warning("No table available to mock the data, closing the program")
            return MockResult(status=RunStatus.NOTHING_TO_DO)

        logger.debug(f"Total number of tables to mock: {total_tables}")
        logger.info("Beginning the mocking process for the tables")

        if not self.config.auto_confirm and self.confirm is not None:
            self.confirm()

        result = MockResult(status=RunStatus.COMPLETED)
        try:
            classification = self.classify(tables)
            if classification.is_empty:
                logger.warning("No columns available to mock the data, closing the program")
                return MockResult(status=RunStatus.NO_COLUMNS)

            self.sequence_only_tables = list(classification.sequence_only_tables)
            self._load(classification, result)
            self._restore_constraints()
        except FatalMockError as e:
            logger.error(f"Mocking aborted: {e}")
            result.status = RunStatus.ABORTED
            result.error = str(e)

        result.skipped_tables = list(self.skipped_tables)
        if result.status == RunStatus.COMPLETED:
            self._report(result)
        return result

    def classify(self, tables: Sequence[TableDescriptor]) -> ClassificationResult:
        """Read each table's columns and classify them."""
        logger.info("Extracting the columns and data type information")
        pairs = []
        for table in tqdm(tables, desc="Extracting column information from tables",
                          disable=not self.config.show_progress):
            pairs.append((table, self.enumerator.enumerate_columns(table)))
        return classify_tables(pairs)

    def _load(self, classification: ClassificationResult, result: MockResult) -> None:
        collections = classification.collections

        if collections and not self.config.ignore_constraints:
            self.constraint_manager.backup_ddl(c.table for c in collections)

        logger.info(f"Total numbers of tables to mock: {len(collections)}")
        for collection in collections:
            if not self.config.ignore_constraints:
                self.constraint_manager.remove_constraints(collection.table)

            table_result = self.table_loader.load(collection)
            result.rows_committed += table_result.rows_committed
            if table_result.skipped:
                if collection.table not in self.skipped_tables:
                    self.skipped_tables.append(collection.table)
            else:
                result.tables_loaded.append(collection.table)

        for table in self.sequence_only_tables:
            result.rows_committed += self.sequence_loader.load(table)
            result.sequence_tables.append(table)

    def _restore_constraints(self) -> None:
        if self.config.ignore_constraints:
            return
        if not self.config.restore_constraints:
            logger.warning("Constraint restoration disabled, the removed constraints "
                           "must be restored manually from the backup file")
            return
        self.constraint_manager.restore_constraints()

    def _report(self, result: MockResult) -> None:
        if self.skipped_tables:
            names = ",".join(str(table) for table in self.skipped_tables)
            logger.warning(f"These tables are skipped since these data types are not "
                           f"supported by {PROGRAM_NAME}: {names}")
        logger.info(f"Completed loading mock data to {result.tables_processed} tables")
