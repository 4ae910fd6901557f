"""Data models for tables, columns, run configuration and run results."""

from typing import List, Optional, Tuple
from enum import Enum
from dataclasses import dataclass, field
from pathlib import Path
from pydantic import BaseModel, Field


class Dialect(str, Enum):
    """Supported database flavors."""
    POSTGRES = "postgres"
    GREENPLUM = "greenplum"


class RunStatus(Enum):
    """Outcome of a mocking run."""
    COMPLETED = "completed"
    NOTHING_TO_DO = "nothing_to_do"
    NO_COLUMNS = "no_columns"
    ABORTED = "aborted"


def quote_identifier(identifier: str) -> str:
    """Quote a PostgreSQL identifier, doubling embedded quotes."""
    return '"' + identifier.replace('"', '""') + '"'


@dataclass(frozen=True)
class TableDescriptor:
    """A relational table identified by schema and name."""
    schema: str
    name: str

    @property
    def qualified_name(self) -> str:
        return f"{quote_identifier(self.schema)}.{quote_identifier(self.name)}"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class ColumnDescriptor:
    """A column with its declared datatype and default-value expression."""
    name: str
    datatype: str
    default: Optional[str] = None


@dataclass(frozen=True)
class TableCollection:
    """Columns of a table that need synthesized values, in load order."""
    table: TableDescriptor
    columns: Tuple[ColumnDescriptor, ...]

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]


@dataclass(frozen=True)
class ClassificationResult:
    """Tables to bulk load plus tables holding only a sequence column."""
    collections: Tuple[TableCollection, ...] = ()
    sequence_only_tables: Tuple[TableDescriptor, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.collections and not self.sequence_only_tables


@dataclass
class TableLoadResult:
    """Outcome of loading a single table."""
    table: TableDescriptor
    rows_committed: int = 0
    skipped: bool = False
    reason: Optional[str] = None


@dataclass
class MockResult:
    """Summary of a mocking run."""
    status: RunStatus
    tables_loaded: List[TableDescriptor] = field(default_factory=list)
    skipped_tables: List[TableDescriptor] = field(default_factory=list)
    sequence_tables: List[TableDescriptor] = field(default_factory=list)
    rows_committed: int = 0
    error: Optional[str] = None

    @property
    def tables_processed(self) -> int:
        return len(self.tables_loaded) + len(self.skipped_tables) + len(self.sequence_tables)

    @property
    def succeeded(self) -> bool:
        return self.status != RunStatus.ABORTED


class MockConfig(BaseModel):
    """Options consumed by the mocking pipeline."""

    rows: int = Field(default=10, ge=1, description="Rows to generate per table")
    ignore_constraints: bool = Field(
        default=False, description="Leave constraints untouched (no backup, removal or restore)"
    )
    restore_constraints: bool = Field(
        default=True, description="Restore removed constraints once all tables are loaded"
    )
    auto_confirm: bool = Field(default=False, description="Do not prompt before loading")
    dialect: Dialect = Field(default=Dialect.POSTGRES, description="Database flavor")
    batch_size: int = Field(default=1000, ge=1, description="Rows per bulk copy")
    backup_dir: Path = Field(default=Path("."), description="Directory for the DDL backup")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible data")
    show_progress: bool = Field(default=True, description="Render progress bars")
