"""Test configuration and fixtures for mockdata tests."""

import pytest
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence
from unittest.mock import MagicMock, Mock

from mockdata.core.database import DatabaseConnection, DatabaseConfig
from mockdata.core.exceptions import UnsupportedDatatypeError
from mockdata.core.introspection import ColumnEnumerator
from mockdata.core.models import (
    ColumnDescriptor, Dialect, MockConfig, TableCollection, TableDescriptor
)


SERIAL_DEFAULT = "nextval('{}_id_seq'::regclass)"


class FakeGenerator:
    """Value generator returning numbered literals.

    Datatypes listed in ``unsupported`` raise UnsupportedDatatypeError, either
    always or once ``fail_after`` values have been produced.
    """

    def __init__(self, unsupported: Sequence[str] = (), fail_after: Optional[int] = None,
                 error: Optional[Exception] = None):
        self.unsupported = set(unsupported)
        self.fail_after = fail_after
        self.error = error
        self.calls: List[str] = []

    def build(self, datatype: str) -> str:
        if self.error is not None:
            raise self.error
        if datatype in self.unsupported and (
                self.fail_after is None or len(self.calls) >= self.fail_after):
            raise UnsupportedDatatypeError(datatype)
        self.calls.append(datatype)
        return f"{datatype}-{len(self.calls)}"


class RecordingCommitter:
    """Committer that remembers every batch instead of copying it."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.batches: List[Dict] = []

    def commit(self, table, column_names, rows, connection) -> int:
        if self.error is not None:
            raise self.error
        self.batches.append({
            "table": table,
            "columns": list(column_names),
            "rows": [list(row) for row in rows],
            "connection": connection,
        })
        return len(rows)

    def rows_for(self, table: TableDescriptor) -> List[List[str]]:
        return [row for batch in self.batches if batch["table"] == table for row in batch["rows"]]


class FakeEnumerator(ColumnEnumerator):
    """Column enumerator backed by a dictionary instead of the catalog."""

    def __init__(self, columns: Dict[TableDescriptor, List[ColumnDescriptor]]):
        super().__init__(db_connection=None)
        self.columns = columns
        self.requested: List[TableDescriptor] = []

    def enumerate_columns(self, table: TableDescriptor) -> List[ColumnDescriptor]:
        self.requested.append(table)
        return list(self.columns.get(table, []))

    @property
    def dialect(self) -> Dialect:
        return Dialect.POSTGRES


@pytest.fixture
def mock_db_config():
    """Create a mock database configuration for testing."""
    return DatabaseConfig(
        host="localhost",
        port=5432,
        database="test_db",
        username="test_user",
        password="test_pass",
    )


@pytest.fixture
def raw_connection():
    """DBAPI connection handed out by the mocked database."""
    return MagicMock(name="raw_connection")


@pytest.fixture
def mock_db_connection(mock_db_config, raw_connection):
    """Create a mock database connection for testing."""
    connection = Mock(spec=DatabaseConnection)
    connection.config = mock_db_config

    @contextmanager
    def _raw_connection():
        try:
            yield raw_connection
        finally:
            raw_connection.close()

    connection.raw_connection.side_effect = _raw_connection
    return connection


@pytest.fixture
def mock_config(tmp_path):
    """Run configuration without prompts or progress bars."""
    return MockConfig(rows=3, auto_confirm=True, show_progress=False, backup_dir=tmp_path)


@pytest.fixture
def users_table():
    return TableDescriptor(schema="public", name="users")


@pytest.fixture
def users_columns():
    return [
        ColumnDescriptor(name="id", datatype="integer", default=SERIAL_DEFAULT.format("users")),
        ColumnDescriptor(name="name", datatype="text"),
    ]


@pytest.fixture
def counter_table():
    return TableDescriptor(schema="public", name="counter")


@pytest.fixture
def counter_columns():
    return [ColumnDescriptor(name="id", datatype="integer", default=SERIAL_DEFAULT.format("counter"))]


@pytest.fixture
def orders_table():
    return TableDescriptor(schema="public", name="orders")


@pytest.fixture
def orders_columns():
    return [
        ColumnDescriptor(name="id", datatype="integer", default=SERIAL_DEFAULT.format("orders")),
        ColumnDescriptor(name="amount", datatype="numeric(10,2)"),
        ColumnDescriptor(name="location", datatype="geometry"),
    ]


@pytest.fixture
def users_collection(users_table):
    return TableCollection(table=users_table, columns=(ColumnDescriptor(name="name", datatype="text"),))
