"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from mockdata.cli import build_mock_config, cli, load_config_file
from mockdata.core.exceptions import DatabaseConnectionError
from mockdata.core.models import Dialect, MockResult, RunStatus, TableDescriptor


CONNECTION_ARGS = ["-d", "test_db", "-u", "test_user", "--password", "test_pass"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_run():
    """Patch the database, table listing and orchestrator used by the commands."""
    with patch("mockdata.cli.DatabaseConnection") as db_cls, \
            patch("mockdata.cli.list_tables") as list_tables, \
            patch("mockdata.cli.MockOrchestrator") as orchestrator_cls:
        users = TableDescriptor("public", "users")
        list_tables.return_value = [users]
        orchestrator_cls.return_value.run.return_value = MockResult(
            status=RunStatus.COMPLETED, tables_loaded=[users], rows_committed=10
        )
        yield db_cls, list_tables, orchestrator_cls


class TestConfigLoading:
    """Test configuration files and overrides."""

    def test_yaml_file(self, tmp_path):
        """Test YAML configuration is loaded."""
        config_file = tmp_path / "mock.yaml"
        config_file.write_text("rows: 25\ndialect: greenplum\n")

        assert load_config_file(str(config_file)) == {"rows": 25, "dialect": "greenplum"}

    def test_empty_file(self, tmp_path):
        """Test an empty file yields no settings."""
        config_file = tmp_path / "mock.yaml"
        config_file.write_text("")

        assert load_config_file(str(config_file)) == {}

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config_file(str(tmp_path / "absent.json"))

    def test_overrides(self, tmp_path):
        """Test command-line values win over the file."""
        config_file = tmp_path / "mock.json"
        config_file.write_text(json.dumps({"rows": 25, "batch_size": 50, "seed": 7}))

        config = build_mock_config({
            "config_path": str(config_file),
            "rows": 5,
            "batch_size": None,
            "no_restore_constraints": True,
            "auto_confirm": True,
            "no_progress": True,
        })

        assert config.rows == 5
        assert config.batch_size == 50
        assert config.seed == 7
        assert config.restore_constraints is False
        assert config.auto_confirm is True
        assert config.show_progress is False
        assert config.dialect == Dialect.POSTGRES


class TestCommands:
    """Test the CLI commands."""

    def test_help(self, runner):
        """Test the group lists its commands."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("database", "schema", "tables"):
            assert command in result.output

    def test_tables_command(self, runner, patched_run):
        """Test the table list is parsed and the run completes."""
        _, list_tables, orchestrator_cls = patched_run

        result = runner.invoke(cli, ["tables", "-t", "users, sales.orders,", "-y", "-r", "10",
                                     *CONNECTION_ARGS])

        assert result.exit_code == 0, result.output
        assert list_tables.call_args[1]["tables"] == ["users", "sales.orders"]
        config = orchestrator_cls.call_args[0][1]
        assert config.rows == 10
        assert config.auto_confirm is True
        assert "Mocking completed successfully" in result.output

    def test_schema_command(self, runner, patched_run):
        """Test the schema name reaches the table listing."""
        _, list_tables, _ = patched_run

        result = runner.invoke(cli, ["schema", "-n", "sales", "--dialect", "greenplum",
                                     *CONNECTION_ARGS])

        assert result.exit_code == 0, result.output
        assert list_tables.call_args[1]["schema"] == "sales"
        assert list_tables.call_args[0][1] == Dialect.GREENPLUM

    def test_database_command_nothing_to_do(self, runner, patched_run):
        """Test an empty database reports that nothing was mocked."""
        _, list_tables, orchestrator_cls = patched_run
        list_tables.return_value = []
        orchestrator_cls.return_value.run.return_value = MockResult(status=RunStatus.NOTHING_TO_DO)

        result = runner.invoke(cli, ["database", *CONNECTION_ARGS])

        assert result.exit_code == 0
        assert "No table available" in result.output

    def test_aborted_run_exits_non_zero(self, runner, patched_run):
        """Test an aborted run is reported with exit code 1."""
        _, _, orchestrator_cls = patched_run
        orchestrator_cls.return_value.run.return_value = MockResult(
            status=RunStatus.ABORTED, error="Error during committing data"
        )

        result = runner.invoke(cli, ["database", *CONNECTION_ARGS])

        assert result.exit_code == 1
        assert "Mocking aborted" in result.output

    def test_connection_failure(self, runner, patched_run):
        """Test an unreachable database exits with code 1."""
        db_cls, _, _ = patched_run
        db_cls.return_value.__enter__.side_effect = DatabaseConnectionError("refused")

        result = runner.invoke(cli, ["database", *CONNECTION_ARGS])

        assert result.exit_code == 1
        assert "refused" in result.output

    def test_invalid_rows(self, runner, patched_run):
        """Test an invalid row count is rejected before connecting."""
        db_cls, _, _ = patched_run

        result = runner.invoke(cli, ["database", "-r", "0", *CONNECTION_ARGS])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        db_cls.assert_not_called()

    def test_missing_database(self, runner, monkeypatch):
        """Test the database name is required."""
        monkeypatch.delenv("PGDATABASE", raising=False)

        result = runner.invoke(cli, ["database", "-u", "test_user"])

        assert result.exit_code == 2
