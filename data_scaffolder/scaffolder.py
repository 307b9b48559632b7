"""Scaffolding orchestrator - settings file in, DataFactory source file out."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import psycopg
from psycopg import Connection

from data_scaffolder.config import (
    ScaffolderConfig,
    build_data_sources,
    get_destination_path,
    load_connection_strings,
    resolve_namespace,
)
from data_scaffolder.core.emitter import CodeEmitter
from data_scaffolder.core.mappings import MappingResolver, build_mappings
from data_scaffolder.core.models import DataSource, EmitContext
from data_scaffolder.exceptions import MetadataReadError

logger = logging.getLogger(__name__)


@dataclass
class ScaffoldResult:
    """
    Outcome of a scaffolding run.

    Attributes:
        output_path: Generated file
        namespace: Namespace used in the generated file
        row_counts: Source name -> table name -> emitted row count
        skipped_tables: "source:schema.table" entries that could not be read
    """

    output_path: Path
    namespace: str
    row_counts: dict[str, dict[str, int]] = field(default_factory=dict)
    skipped_tables: list[str] = field(default_factory=list)

    @property
    def table_count(self) -> int:
        return sum(len(tables) for tables in self.row_counts.values())


def write_atomic(path: Path, content: str) -> None:
    """
    Write a text file in one step.

    Content goes to a temporary sibling first and is moved into place with
    os.replace, so readers see either the old file or the complete new one.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_resolvers(
    sources: list[DataSource],
    prefix: str,
    connect: Callable[[DataSource], Connection],
) -> dict[str, MappingResolver]:
    """
    Build the mapping resolver of every data source (one connection each).

    Raises:
        MetadataReadError: If a source is unreachable or the annotation query fails
    """
    resolvers = {}
    for source in sources:
        try:
            with connect(source) as conn:
                mappings = build_mappings(conn, source.name, prefix)
        except psycopg.Error as exc:
            raise MetadataReadError(source.name, str(exc)) from exc
        resolvers[source.name] = MappingResolver(mappings)
    return resolvers


def scaffold(
    settings_path: Path | str,
    config: Optional[ScaffolderConfig] = None,
    output_path: Path | str | None = None,
    namespace: Optional[str] = None,
    connect: Callable[[DataSource], Connection] | None = None,
    on_progress: Callable[[EmitContext], None] | None = None,
) -> ScaffoldResult:
    """
    Generate the DataFactory file for every connection string in a settings file.

    Args:
        settings_path: appsettings*.json or TOML document with connection strings
        config: Tool configuration (defaults when omitted)
        output_path: Explicit output file (defaults to Models/ or project dir)
        namespace: Explicit namespace, overriding project file and annotations
        connect: Connection factory (defaults to DataSource.connect)
        on_progress: Progress callback, see CodeEmitter

    Returns:
        ScaffoldResult

    Raises:
        InvalidIdentifierError: If a connection string name has no usable characters
        DuplicateDataSourceError: If two names collide after sanitizing
        ConfigurationError: If the settings document is malformed
        MetadataReadError: If a source is unreachable or catalog or annotation queries fail
        MaterializeError: If rows of a table cannot be read (unless skipping)
        DuplicateMemberError: If generated member names collide
        LiteralFormatError: If a value has no C# literal form
    """
    config = config or ScaffolderConfig()
    connect = connect or DataSource.connect
    settings_path = Path(settings_path)

    sources = build_data_sources(load_connection_strings(settings_path))

    project_dir = settings_path.resolve().parent
    if output_path is None:
        destination = get_destination_path(project_dir, config.output.models_dir)
        target = destination / config.output.file_name
    else:
        target = Path(output_path)
        destination = target.parent

    resolvers = load_resolvers(sources, config.mappings.annotation_prefix, connect)
    if namespace is None:
        namespace = next(
            (r.namespace for r in resolvers.values() if r.namespace),
            None,
        ) or resolve_namespace(project_dir, destination, config.output)

    emitter = CodeEmitter(
        output=config.output,
        catalog=config.catalog,
        connect=connect,
        on_progress=on_progress,
    )
    buffer = io.StringIO()
    summary = emitter.emit(buffer, sources, resolvers, namespace, settings_path.name)

    target.parent.mkdir(parents=True, exist_ok=True)
    write_atomic(target, buffer.getvalue())
    logger.info("Wrote %s", target)

    return ScaffoldResult(
        output_path=target,
        namespace=namespace,
        row_counts=summary.row_counts,
        skipped_tables=summary.skipped_tables,
    )
