"""Catalog queries listing tables and their columns per database dialect."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Type

from sqlalchemy.exc import SQLAlchemyError

from .database import DatabaseConnection
from .exceptions import IntrospectionError
from .models import ColumnDescriptor, Dialect, TableDescriptor


logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")
GREENPLUM_SYSTEM_SCHEMAS = SYSTEM_SCHEMAS + ("gp_toolkit",)


class ColumnEnumerator(ABC):
    """Reads a table's columns, in attribute order, from the catalog."""

    query: str = ""

    def __init__(self, db_connection: DatabaseConnection):
        self.db_connection = db_connection

    def enumerate_columns(self, table: TableDescriptor) -> List[ColumnDescriptor]:
        """Get the columns of a table with datatype and default expression."""
        try:
            rows = self.db_connection.execute_query(
                self.query, {"schema": table.schema, "table": table.name}
            )
        except SQLAlchemyError as e:
            raise IntrospectionError(f"Failed to extract columns of table {table}: {e}") from e

        return [self._to_column(row) for row in rows]

    @staticmethod
    def _to_column(row) -> ColumnDescriptor:
        name, datatype, default = row[0], row[1], row[2]
        return ColumnDescriptor(name=name, datatype=datatype, default=default or None)

    @property
    @abstractmethod
    def dialect(self) -> Dialect:
        """Dialect served by this enumerator."""


class PostgresColumnEnumerator(ColumnEnumerator):
    """PostgreSQL 10+; identity columns are reported with their sequence default."""

    query = """
        SELECT a.attname,
               pg_catalog.format_type(a.atttypid, a.atttypmod),
               CASE WHEN a.attidentity IN ('a', 'd') THEN
                        'nextval(' || quote_literal(pg_catalog.pg_get_serial_sequence(
                            quote_ident(n.nspname) || '.' || quote_ident(c.relname), a.attname
                        )) || '::regclass)'
                    ELSE pg_catalog.pg_get_expr(d.adbin, d.adrelid)
               END
        FROM pg_catalog.pg_attribute a
        JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
        JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
        WHERE n.nspname = :schema
          AND c.relname = :table
          AND a.attnum > 0
          AND NOT a.attisdropped
        ORDER BY a.attnum
    """

    @property
    def dialect(self) -> Dialect:
        return Dialect.POSTGRES


class GreenplumColumnEnumerator(ColumnEnumerator):
    """Greenplum catalog, which has no identity columns."""

    query = """
        SELECT a.attname,
               pg_catalog.format_type(a.atttypid, a.atttypmod),
               pg_catalog.pg_get_expr(d.adbin, d.adrelid)
        FROM pg_catalog.pg_attribute a
        JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
        JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
        WHERE n.nspname = :schema
          AND c.relname = :table
          AND a.attnum > 0
          AND NOT a.attisdropped
        ORDER BY a.attnum
    """

    @property
    def dialect(self) -> Dialect:
        return Dialect.GREENPLUM


_ENUMERATORS: Dict[Dialect, Type[ColumnEnumerator]] = {
    Dialect.POSTGRES: PostgresColumnEnumerator,
    Dialect.GREENPLUM: GreenplumColumnEnumerator,
}


def get_column_enumerator(dialect: Dialect, db_connection: DatabaseConnection) -> ColumnEnumerator:
    """Select the column enumerator for the configured dialect."""
    try:
        enumerator_class = _ENUMERATORS[Dialect(dialect)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported dialect: {dialect}. Supported: {[d.value for d in Dialect]}")
    return enumerator_class(db_connection)


def list_tables(db_connection: DatabaseConnection, dialect: Dialect = Dialect.POSTGRES,
                schema: Optional[str] = None,
                tables: Optional[Sequence[str]] = None) -> List[TableDescriptor]:
    """List user tables, optionally limited to a schema or to named tables.

    Table names may be given as ``table`` or ``schema.table``.
    """
    excluded = GREENPLUM_SYSTEM_SCHEMAS if dialect == Dialect.GREENPLUM else SYSTEM_SCHEMAS
    excluded_sql = ", ".join(f"'{name}'" for name in excluded)
    query = f"""
        SELECT table_schema, table_name
        FROM information_schema.tables
        WHERE table_type = 'BASE TABLE'
          AND table_schema NOT IN ({excluded_sql})
          AND table_schema NOT LIKE 'pg_temp%'
          AND table_schema NOT LIKE 'pg_toast%'
    """
    params = {}
    if schema:
        query += " AND table_schema = :schema"
        params["schema"] = schema
    query += " ORDER BY table_schema, table_name"

    try:
        rows = db_connection.execute_query(query, params)
    except SQLAlchemyError as e:
        raise IntrospectionError(f"Failed to list tables: {e}") from e

    found = [TableDescriptor(schema=row[0], name=row[1]) for row in rows]
    if not tables:
        return found

    selected = []
    for requested in tables:
        requested = requested.strip()
        matches = [t for t in found if requested in (t.name, f"{t.schema}.{t.name}")]
        if not matches:
            logger.warning(f"Table {requested} not found, ignoring it")
        for table in matches:
            if table not in selected:
                selected.append(table)
    return selected
