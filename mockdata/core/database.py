"""Database connection and management utilities."""

import logging
from contextlib import contextmanager
from typing import Dict, Any, Iterator, Optional
from sqlalchemy import create_engine, Engine, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from pydantic import BaseModel, Field, field_validator

from .exceptions import DatabaseConnectionError


logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Configuration model for database connections."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(..., description="Database name")
    username: str = Field(..., description="Database username")
    password: str = Field(default="", description="Database password")
    ssl_mode: Optional[str] = Field(default=None, description="SSL mode")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("database", "username")
    @classmethod
    def validate_not_empty(cls, v):
        if not v.strip():
            raise ValueError("Value must not be empty")
        return v


class DatabaseConnection:
    """Manages the PostgreSQL / Greenplum engine used by the mocking run."""

    def __init__(self, config: DatabaseConfig):
        """Initialize database connection with configuration."""
        self.config = config
        self._engine: Optional[Engine] = None

    def connect(self) -> None:
        """Establish connection to the database."""
        try:
            logger.info(f"Connecting to database {self.config.database} at {self.config.host}:{self.config.port}")

            self._engine = create_engine(
                self._build_connection_url(),
                echo=False,
                pool_pre_ping=True,
                pool_recycle=3600,
                isolation_level="AUTOCOMMIT",
                connect_args=self._get_connect_args(),
            )

            # Test connection
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                logger.info("Database connection established successfully")

        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e

    def _build_connection_url(self) -> URL:
        """Build SQLAlchemy connection URL from config."""
        return URL.create(
            "postgresql+psycopg2",
            username=self.config.username,
            password=self.config.password or None,
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
        )

    def _get_connect_args(self) -> Dict[str, Any]:
        """Get driver-specific connection arguments."""
        args = {"application_name": "mockdata"}
        if self.config.ssl_mode:
            args["sslmode"] = self.config.ssl_mode
        return args

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a raw SQL query and return results."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(query), params or {})
                return result.fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Query execution failed: {e}")
            raise

    def execute_statement(self, statement: str) -> None:
        """Execute a DDL/DML statement in its own transaction.

        The statement goes to the driver verbatim, so colons and percent
        signs inside literals or quoted names are not read as parameters.
        """
        with self.engine.begin() as conn:
            conn.execution_options(no_parameters=True).exec_driver_sql(statement)

    @contextmanager
    def raw_connection(self) -> Iterator[Any]:
        """Yield a DBAPI connection, closing it on every exit path."""
        try:
            connection = self.engine.raw_connection()
        except SQLAlchemyError as e:
            logger.error(f"Failed to open a database session: {e}")
            raise DatabaseConnectionError(f"Could not open a database session: {e}") from e
        try:
            yield connection
        finally:
            connection.close()

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection closed")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
