"""Exception hierarchy for the mocking pipeline."""

from typing import Optional


class MockDataError(Exception):
    """Base exception for mockdata errors."""

    pass


class UnsupportedDatatypeError(MockDataError):
    """No value generator exists for a column's datatype.

    Recoverable: the table being loaded is skipped and the run continues.
    """

    def __init__(self, datatype: str, table: Optional[str] = None,
                 column: Optional[str] = None):
        self.datatype = datatype
        self.table = table
        self.column = column
        location = ""
        if table and column:
            location = f" (table {table}, column {column})"
        super().__init__(f"unsupported datatypes found: {datatype}{location}")


class FatalMockError(MockDataError):
    """Error that aborts the whole run."""

    pass


class DataGenerationError(FatalMockError):
    """Value generator failed for a reason other than an unsupported datatype."""

    def __init__(self, table: str, column: str, cause: Exception):
        self.table = table
        self.column = column
        self.cause = cause
        super().__init__(
            f"Error when building data for table {table}, column {column}: {cause}"
        )


class CommitError(FatalMockError):
    """Bulk copy of generated rows was rejected."""

    def __init__(self, table: str, statement: str, payload: str, cause: Exception):
        self.table = table
        self.statement = statement
        self.payload = payload
        self.cause = cause
        super().__init__(
            f"Error during committing data to table {table} "
            f"({statement}; {payload}): {cause}"
        )


class SequenceLoadError(FatalMockError):
    """Default-value insert into a sequence-only table failed."""

    def __init__(self, table: str, cause: Exception):
        self.table = table
        self.cause = cause
        super().__init__(
            f"Error when loading the serial datatype for table {table}: {cause}"
        )


class ConstraintError(FatalMockError):
    """Backing up, removing or restoring constraints failed."""

    def __init__(self, operation: str, table: str, cause: Exception):
        self.operation = operation
        self.table = table
        self.cause = cause
        super().__init__(f"Error during {operation} for table {table}: {cause}")


class IntrospectionError(FatalMockError):
    """Tables or columns could not be read from the catalog."""

    pass


class DatabaseConnectionError(FatalMockError, ConnectionError):
    """Database is unreachable."""

    pass
