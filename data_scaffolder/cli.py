"""CLI commands for data-scaffolder."""

import logging
import sys
from pathlib import Path

import click

from data_scaffolder.config import ScaffolderConfig, build_data_sources, load_connection_strings
from data_scaffolder.core.catalog import read_source_tables
from data_scaffolder.core.models import EmitContext
from data_scaffolder.exceptions import DataScaffolderError
from data_scaffolder.scaffolder import scaffold as run_scaffold


def _load_config(config_path: str | None, settings_file: str) -> ScaffolderConfig:
    if config_path is not None:
        return ScaffolderConfig.from_toml(config_path)
    return ScaffolderConfig.find_and_load(Path(settings_file).resolve().parent)


def _echo_progress(context: EmitContext) -> None:
    if context.row_index == 0:
        click.echo(
            f"Scaffolding {context.source_name}:{context.table_name} "
            f"({context.row_count} rows)"
        )


@click.group()
@click.version_option(package_name="data-scaffolder")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """data-scaffolder - freeze database tables into C# static data."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("settings_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="data-scaffolder.toml (default: searched from the settings file directory)")
@click.option("--output", "output_path", type=click.Path(dir_okay=False),
              help="Output file (default: Models/DataFactory.cs or beside the settings file)")
@click.option("--namespace", help="Namespace of the generated code")
@click.option("--raw-literals", is_flag=True,
              help="Do not escape quotes/control characters in string literals")
@click.option("--skip-failed-tables", is_flag=True,
              help="Skip tables whose rows cannot be read instead of aborting")
def scaffold(
    settings_file: str,
    config_path: str | None,
    output_path: str | None,
    namespace: str | None,
    raw_literals: bool,
    skip_failed_tables: bool,
) -> None:
    """Generate DataFactory.cs from every connection string in SETTINGS_FILE."""
    try:
        config = _load_config(config_path, settings_file)
        if raw_literals:
            config.output.escape_literals = False
        if skip_failed_tables:
            config.output.skip_failed_tables = True

        result = run_scaffold(
            settings_file,
            config=config,
            output_path=output_path,
            namespace=namespace,
            on_progress=_echo_progress,
        )
    except (DataScaffolderError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for skipped in result.skipped_tables:
        click.echo(f"Skipped: {skipped}", err=True)
    click.echo(f"✓ Scaffolded {result.table_count} tables into {result.output_path}")


@cli.command()
@click.argument("settings_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="data-scaffolder.toml (default: searched from the settings file directory)")
def tables(settings_file: str, config_path: str | None) -> None:
    """List the tables that would be scaffolded for each connection string."""
    try:
        config = _load_config(config_path, settings_file)
        sources = build_data_sources(load_connection_strings(settings_file))
        for source in sources:
            found = read_source_tables(source, config.catalog)
            click.echo(f"{source.name}:")
            for table in found:
                click.echo(f"  {table.full_name} ({len(table.columns)} columns)")
    except (DataScaffolderError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
