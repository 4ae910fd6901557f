"""Constraint backup, removal and restoration around a mocking run."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .database import DatabaseConnection
from .exceptions import ConstraintError
from .models import TableDescriptor, quote_identifier


logger = logging.getLogger(__name__)

PRIMARY_KEY = "p"
UNIQUE = "u"
CHECK = "c"
FOREIGN_KEY = "f"

# Keys and checks go back before the foreign keys that depend on them
RESTORE_ORDER = {PRIMARY_KEY: 0, UNIQUE: 1, CHECK: 2, FOREIGN_KEY: 3}

CONSTRAINTS_QUERY = """
    SELECT n.nspname, c.relname, con.conname, con.contype,
           pg_catalog.pg_get_constraintdef(con.oid),
           ARRAY(SELECT a.attname
                 FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
                 JOIN pg_catalog.pg_attribute a
                   ON a.attrelid = con.conrelid AND a.attnum = k.attnum
                 ORDER BY k.ord),
           rn.nspname, rc.relname,
           ARRAY(SELECT a.attname
                 FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
                 JOIN pg_catalog.pg_attribute a
                   ON a.attrelid = con.confrelid AND a.attnum = k.attnum
                 ORDER BY k.ord)
    FROM pg_catalog.pg_constraint con
    JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_catalog.pg_class rc ON rc.oid = con.confrelid
    LEFT JOIN pg_catalog.pg_namespace rn ON rn.oid = rc.relnamespace
    WHERE con.contype IN ('p', 'u', 'c', 'f')
      AND ((n.nspname = :schema AND c.relname = :table)
           OR (con.contype = 'f' AND rn.nspname = :schema AND rc.relname = :table))
    ORDER BY n.nspname, c.relname, con.conname
"""


@dataclass(frozen=True)
class ConstraintDefinition:
    """A table constraint as reported by pg_get_constraintdef."""
    table: TableDescriptor
    name: str
    kind: str
    definition: str
    columns: Tuple[str, ...] = ()
    referenced_table: Optional[TableDescriptor] = None
    referenced_columns: Tuple[str, ...] = ()

    @property
    def key(self) -> Tuple[TableDescriptor, str]:
        return self.table, self.name

    def add_statement(self) -> str:
        return (f"ALTER TABLE {self.table.qualified_name} "
                f"ADD CONSTRAINT {quote_identifier(self.name)} {self.definition}")

    def drop_statement(self) -> str:
        return (f"ALTER TABLE {self.table.qualified_name} "
                f"DROP CONSTRAINT IF EXISTS {quote_identifier(self.name)}")


class ConstraintManager:
    """Removes constraints before loading and puts them back afterwards."""

    def __init__(self, db_connection: DatabaseConnection, backup_dir: Path = Path(".")):
        self.db_connection = db_connection
        self.backup_dir = Path(backup_dir)
        self._removed: Dict[Tuple[TableDescriptor, str], ConstraintDefinition] = {}

    @property
    def removed_constraints(self) -> List[ConstraintDefinition]:
        return list(self._removed.values())

    def get_constraints(self, table: TableDescriptor) -> List[ConstraintDefinition]:
        """Constraints of the table plus foreign keys pointing at it."""
        try:
            rows = self.db_connection.execute_query(
                CONSTRAINTS_QUERY, {"schema": table.schema, "table": table.name}
            )
        except SQLAlchemyError as e:
            raise ConstraintError("reading constraints", str(table), e) from e

        constraints = []
        for row in rows:
            referenced = TableDescriptor(row[6], row[7]) if row[6] and row[7] else None
            constraints.append(ConstraintDefinition(
                table=TableDescriptor(row[0], row[1]),
                name=row[2],
                kind=row[3],
                definition=row[4],
                columns=tuple(row[5] or ()),
                referenced_table=referenced,
                referenced_columns=tuple(row[8] or ()),
            ))
        return constraints

    def backup_ddl(self, tables: Iterable[TableDescriptor]) -> Path:
        """Write the constraint DDL of the tables to a timestamped file."""
        seen = set()
        statements = []
        for table in tables:
            for constraint in self.get_constraints(table):
                if constraint.key not in seen:
                    seen.add(constraint.key)
                    statements.append(constraint.add_statement())

        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        path = self.backup_dir / f"mockdata_constraints_backup_{timestamp}.sql"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                f.write(f"-- Constraint backup taken by mockdata on {datetime.now().isoformat()}\n")
                for statement in statements:
                    f.write(statement + ";\n")
        except OSError as e:
            raise ConstraintError("backing up DDL", str(path), e) from e

        logger.info(f"Backed up {len(statements)} constraint definitions to {path}")
        return path

    def remove_constraints(self, table: TableDescriptor) -> int:
        """Drop the table's constraints, foreign keys first, remembering each one."""
        constraints = sorted(self.get_constraints(table),
                             key=lambda c: -RESTORE_ORDER.get(c.kind, 0))
        removed = 0
        for constraint in constraints:
            if constraint.key in self._removed:
                continue
            logger.debug(f"Removing constraint {constraint.name} on {constraint.table}")
            try:
                self.db_connection.execute_statement(constraint.drop_statement())
            except SQLAlchemyError as e:
                raise ConstraintError(f"removing constraint {constraint.name}",
                                      str(constraint.table), e) from e
            self._removed[constraint.key] = constraint
            removed += 1
        return removed

    def restore_constraints(self) -> int:
        """Re-add every removed constraint.

        A constraint rejected because of the generated data is retried once
        after deleting or repointing the offending rows.
        """
        pending = sorted(self._removed.values(), key=lambda c: RESTORE_ORDER.get(c.kind, 0))
        logger.info(f"Restoring {len(pending)} constraints")

        restored = 0
        for constraint in pending:
            try:
                self.db_connection.execute_statement(constraint.add_statement())
            except SQLAlchemyError as e:
                logger.warning(f"Constraint {constraint.name} on {constraint.table} "
                               f"rejected the mocked data, fixing it: {e}")
                self._fix_violations(constraint)
                try:
                    self.db_connection.execute_statement(constraint.add_statement())
                except SQLAlchemyError as retry_error:
                    raise ConstraintError(f"restoring constraint {constraint.name}",
                                          str(constraint.table), retry_error) from retry_error
            del self._removed[constraint.key]
            restored += 1
        return restored

    def _fix_violations(self, constraint: ConstraintDefinition) -> None:
        for statement in self.fix_statements(constraint):
            logger.debug(f"Fixing data for {constraint.name}: {statement}")
            try:
                self.db_connection.execute_statement(statement)
            except SQLAlchemyError as e:
                raise ConstraintError(f"fixing data for constraint {constraint.name}",
                                      str(constraint.table), e) from e

    @staticmethod
    def fix_statements(constraint: ConstraintDefinition) -> List[str]:
        """Statements that remove the rows violating a constraint."""
        table = constraint.table.qualified_name
        columns = [quote_identifier(c) for c in constraint.columns]

        if constraint.kind in (PRIMARY_KEY, UNIQUE) and columns:
            statements = []
            if constraint.kind == PRIMARY_KEY:
                nulls = " OR ".join(f"{c} IS NULL" for c in columns)
                statements.append(f"DELETE FROM {table} WHERE {nulls}")
            matches = " AND ".join(f"a.{c} = b.{c}" for c in columns)
            statements.append(
                f"DELETE FROM {table} a USING {table} b WHERE a.ctid < b.ctid AND {matches}"
            )
            return statements

        if constraint.kind == CHECK:
            expression = constraint.definition
            if expression.upper().startswith("CHECK "):
                expression = expression[len("CHECK "):]
            if expression.upper().endswith(" NOT VALID"):
                expression = expression[:-len(" NOT VALID")]
            return [f"DELETE FROM {table} WHERE NOT ({expression})"]

        if constraint.kind == FOREIGN_KEY and constraint.referenced_table and columns:
            parent = constraint.referenced_table.qualified_name
            parent_columns = [quote_identifier(c) for c in constraint.referenced_columns]
            not_null = " AND ".join(f"t.{c} IS NOT NULL" for c in columns)
            joins = " AND ".join(f"p.{pc} = t.{c}" for c, pc in zip(columns, parent_columns))
            orphans = f"{not_null} AND NOT EXISTS (SELECT 1 FROM {parent} p WHERE {joins})"
            statements = []
            if len(columns) == 1:
                # correlated on t so every orphan picks its own random parent
                statements.append(
                    f"UPDATE {table} t SET {columns[0]} = COALESCE("
                    f"(SELECT p.{parent_columns[0]} FROM {parent} p WHERE t.{columns[0]} IS NOT NULL "
                    f"ORDER BY random() LIMIT 1), t.{columns[0]}) WHERE {orphans}"
                )
            statements.append(f"DELETE FROM {table} t WHERE {orphans}")
            return statements

        return []
