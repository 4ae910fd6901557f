"""
mockdata - Load synthetic rows into PostgreSQL and Greenplum tables.

This package provides tools to:
- Classify table columns into sequence-backed and generated columns
- Generate literal values for each declared datatype
- Bulk load the generated rows with constraints temporarily removed
- Restore the removed constraints once every table is loaded
"""

__version__ = "1.0.0"

from mockdata.core.database import DatabaseConnection, DatabaseConfig
from mockdata.core.generator import DataTypeGenerator
from mockdata.core.models import MockConfig, MockResult, RunStatus, TableDescriptor
from mockdata.core.orchestrator import MockOrchestrator

__all__ = [
    "DatabaseConnection",
    "DatabaseConfig",
    "DataTypeGenerator",
    "MockConfig",
    "MockResult",
    "MockOrchestrator",
    "RunStatus",
    "TableDescriptor",
]
