"""Command-line interface for mockdata."""

import click
import functools
import json
import logging
import sys
import time
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

from mockdata.core.database import DatabaseConnection, DatabaseConfig
from mockdata.core.exceptions import FatalMockError
from mockdata.core.introspection import list_tables
from mockdata.core.models import Dialect, MockConfig, MockResult, RunStatus
from mockdata.core.orchestrator import MockOrchestrator


logger = logging.getLogger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
def cli(verbose: bool, quiet: bool):
    """mockdata - Load synthetic rows into PostgreSQL and Greenplum tables."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)


def connection_options(func):
    """Options shared by every command to reach the database."""
    @click.option('--host', '-h', default='localhost', envvar='PGHOST', help='Database host')
    @click.option('--port', '-p', type=int, default=5432, envvar='PGPORT', help='Database port')
    @click.option('--database', '-d', required=True, envvar='PGDATABASE', help='Database name')
    @click.option('--username', '-u', required=True, envvar='PGUSER', help='Database username')
    @click.option('--password', default='', envvar='PGPASSWORD', help='Database password')
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)
    return wrapper


def mock_options(func):
    """Options controlling the mocking run."""
    @click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
                  help='Configuration file (JSON/YAML)')
    @click.option('--rows', '-r', type=int, help='Number of rows to generate per table [default: 10]')
    @click.option('--dialect', type=click.Choice([d.value for d in Dialect]),
                  help='Database flavor [default: postgres]')
    @click.option('--batch-size', type=int, help='Rows per bulk copy, 1 commits row by row [default: 1000]')
    @click.option('--ignore-constraints', is_flag=True,
                  help='Do not back up, remove or restore constraints')
    @click.option('--no-restore-constraints', is_flag=True,
                  help='Remove constraints but leave restoring them to the operator')
    @click.option('--yes', '-y', 'auto_confirm', is_flag=True, help='Do not prompt before loading')
    @click.option('--backup-dir', type=click.Path(file_okay=False),
                  help='Directory for the constraint backup file')
    @click.option('--seed', type=int, help='Random seed for reproducible data')
    @click.option('--no-progress', is_flag=True, help='Hide progress bars')
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)
    return wrapper


@cli.command()
@connection_options
@mock_options
def database(**options):
    """Mock every table of the database."""
    run_mock(options)


@cli.command()
@click.option('--name', '-n', required=True, help='Schema whose tables are mocked')
@connection_options
@mock_options
def schema(name: str, **options):
    """Mock every table of a schema."""
    run_mock(options, schema=name)


@cli.command()
@click.option('--table-list', '-t', required=True,
              help='Comma-separated list of tables (table or schema.table)')
@connection_options
@mock_options
def tables(table_list: str, **options):
    """Mock the listed tables."""
    names = [name.strip() for name in table_list.split(',') if name.strip()]
    run_mock(options, tables=names)


def run_mock(options: Dict[str, Any], schema: Optional[str] = None,
             tables: Optional[List[str]] = None) -> None:
    """Build the configuration, connect and run the orchestrator."""
    try:
        config = build_mock_config(options)
        db_config = DatabaseConfig(
            host=options['host'],
            port=options['port'],
            database=options['database'],
            username=options['username'],
            password=options['password'],
        )
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"\n❌ Invalid configuration: {e}", err=True)
        sys.exit(1)

    start_time = time.time()
    try:
        with DatabaseConnection(db_config) as db_conn:
            targets = list_tables(db_conn, config.dialect, schema=schema, tables=tables)
            click.echo(f"🔍 Found {len(targets)} tables to mock")

            orchestrator = MockOrchestrator(db_conn, config, confirm=confirm_loading)
            result = orchestrator.run(targets)
    except FatalMockError as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)

    print_summary(result, time.time() - start_time)
    if result.status == RunStatus.ABORTED:
        sys.exit(1)


def confirm_loading() -> None:
    """Ask the operator before touching constraints and data."""
    click.confirm(
        "\nThis will remove constraints and load mock data into the tables. Proceed?",
        abort=True,
    )


def build_mock_config(options: Dict[str, Any]) -> MockConfig:
    """Merge the configuration file with command-line overrides."""
    values: Dict[str, Any] = {}
    if options.get('config_path'):
        values.update(load_config_file(options['config_path']))

    for key in ('rows', 'dialect', 'batch_size', 'backup_dir', 'seed'):
        if options.get(key) is not None:
            values[key] = options[key]
    if options.get('ignore_constraints'):
        values['ignore_constraints'] = True
    if options.get('no_restore_constraints'):
        values['restore_constraints'] = False
    if options.get('auto_confirm'):
        values['auto_confirm'] = True
    if options.get('no_progress'):
        values['show_progress'] = False

    return MockConfig(**values)


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from JSON or YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        if config_file.suffix.lower() == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    return data or {}


def print_summary(result: MockResult, elapsed: float) -> None:
    """Echo the outcome of a run."""
    if result.status == RunStatus.NOTHING_TO_DO:
        click.echo("\n⚠️  No table available to mock the data")
        return
    if result.status == RunStatus.NO_COLUMNS:
        click.echo("\n⚠️  No columns available to mock the data")
        return

    click.echo(f"\n📊 Mocking Summary:")
    click.echo(f"  Total time: {elapsed:.2f}s")
    click.echo(f"  Tables loaded: {len(result.tables_loaded)}")
    click.echo(f"  Sequence-only tables loaded: {len(result.sequence_tables)}")
    click.echo(f"  Rows committed: {result.rows_committed:,}")
    if result.skipped_tables:
        names = ', '.join(str(table) for table in result.skipped_tables)
        click.echo(f"  ⚠️  Skipped tables (unsupported datatypes): {names}")

    if result.status == RunStatus.ABORTED:
        click.echo(f"\n❌ Mocking aborted: {result.error}", err=True)
        click.echo("  Constraints of the processed tables may still be removed; "
                   "restore them from the backup file.", err=True)
    else:
        click.echo("\n🎉 Mocking completed successfully!")


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
