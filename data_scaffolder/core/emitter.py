"""
C# code emission.

Streams the generated file: header and namespace, one static partial class
per data source, one record-array property per non-empty table and one
object initializer per row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional, TextIO

from psycopg import Connection

from data_scaffolder.config import CatalogConfig, OutputConfig
from data_scaffolder.core.catalog import read_source_tables
from data_scaffolder.core.literals import format_literal
from data_scaffolder.core.mappings import MappingResolver
from data_scaffolder.core.materializer import TableMaterializer
from data_scaffolder.core.models import DataSource, EmitContext, RowBuffer, TableDescriptor
from data_scaffolder.exceptions import DuplicateMemberError, LiteralFormatError, MaterializeError

logger = logging.getLogger(__name__)

INDENT = "    "
GENERATOR_NAME = "data-scaffolder"


@dataclass
class EmitSummary:
    """What ended up in the generated file."""

    row_counts: dict[str, dict[str, int]] = field(default_factory=dict)
    skipped_tables: list[str] = field(default_factory=list)

    def record(self, source_name: str, table_name: str, row_count: int) -> None:
        self.row_counts.setdefault(source_name, {})[table_name] = row_count


class CodeEmitter:
    """Write the DataFactory source for a set of data sources."""

    def __init__(
        self,
        output: Optional[OutputConfig] = None,
        catalog: Optional[CatalogConfig] = None,
        connect: Callable[[DataSource], Connection] | None = None,
        on_progress: Callable[[EmitContext], None] | None = None,
    ):
        """
        Initialize emitter.

        Args:
            output: Output settings (container suffix, escaping, failure policy)
            catalog: Table exclusion rules
            connect: Connection factory (defaults to DataSource.connect)
            on_progress: Called when a table starts and after every row
        """
        self.output = output or OutputConfig()
        self.catalog = catalog or CatalogConfig()
        self._connect = connect or DataSource.connect
        self._on_progress = on_progress

    def emit(
        self,
        stream: TextIO,
        sources: list[DataSource],
        resolvers: dict[str, MappingResolver],
        namespace: str,
        settings_name: str,
    ) -> EmitSummary:
        """
        Emit the complete file to a text stream.

        Args:
            stream: Destination (callers buffer it and write the file once)
            sources: Data sources in configuration order
            resolvers: Mapping resolver per data source name
            namespace: Namespace of the generated code
            settings_name: Settings file name mentioned in the header

        Returns:
            EmitSummary with emitted row counts and skipped tables

        Raises:
            MetadataReadError: If a catalog query fails
            MaterializeError: If rows of a table cannot be read (unless skipping)
            DuplicateMemberError: If two record collections or two properties share a name
            LiteralFormatError: If a value has no C# literal form
        """
        summary = EmitSummary()
        self._write_file_start(stream, namespace, settings_name)
        for source in sources:
            resolver = resolvers.get(source.name) or MappingResolver([])
            self._write_source(stream, source, resolver, summary)
        stream.write("}\n")
        return summary

    def _write_file_start(self, stream: TextIO, namespace: str, settings_name: str) -> None:
        stream.write(f"// file generated by {GENERATOR_NAME}\n")
        stream.write(f"// using connection string(s) from {settings_name}\n")
        stream.write("using System;\n")
        stream.write(f"namespace {namespace} {{\n")

    def _write_source(
        self,
        stream: TextIO,
        source: DataSource,
        resolver: MappingResolver,
        summary: EmitSummary,
    ) -> None:
        tables = read_source_tables(source, self.catalog, self._connect)

        container = f"{source.name}{self.output.container_suffix}"
        stream.write(f"{INDENT}public static partial class {container} {{\n")

        materializer = TableMaterializer(source, self._connect)
        records: dict[str, str] = {}
        for table in tables:
            try:
                buffer = materializer.materialize(table)
            except MaterializeError:
                if not self.output.skip_failed_tables:
                    raise
                logger.warning("Skipping %s:%s, rows could not be read", source.name, table.full_name)
                summary.skipped_tables.append(f"{source.name}:{table.full_name}")
                continue

            if buffer.is_empty:
                logger.debug("Skipping empty table %s:%s", source.name, table.full_name)
                continue

            records[table.full_name] = table.record_name
            _check_unique(container, records)
            self._write_table(stream, source, table, buffer, resolver)
            summary.record(source.name, table.full_name, len(buffer))

        stream.write(f"{INDENT}}}\n")

    def _write_table(
        self,
        stream: TextIO,
        source: DataSource,
        table: TableDescriptor,
        buffer: RowBuffer,
        resolver: MappingResolver,
    ) -> None:
        logger.info("Scaffolding %s:%s", source.name, table.full_name)
        self._progress(source, table, 0, len(buffer))

        schema_name, table_name = table.schema_name, table.table_name
        class_name = resolver.class_name(schema_name, table_name)
        property_names = [
            resolver.property_name(schema_name, table_name, col.name) for col in buffer.columns
        ]
        _check_unique(
            f"{source.name}:{table.full_name}",
            {col.name: prop for col, prop in zip(buffer.columns, property_names)},
        )

        stream.write(f"{INDENT * 2}public static {class_name}[] {table.record_name} {{ get; set; }}\n")
        stream.write(f"{INDENT * 3}= new {class_name}[] {{\n")

        for index, row in enumerate(buffer, start=1):
            stream.write(f"{INDENT * 4}new {class_name} {{\n")
            for col, prop, value in zip(buffer.columns, property_names, row):
                try:
                    literal = format_literal(value, col.data_type, escape=self.output.escape_literals)
                except LiteralFormatError as exc:
                    raise LiteralFormatError(
                        value, col.data_type, f"{source.name}:{table.full_name}.{col.name}"
                    ) from exc
                stream.write(f"{INDENT * 6}{prop} = {literal},\n")
            stream.write(f"{INDENT * 4}}},\n")
            self._progress(source, table, index, len(buffer))

        stream.write(f"{INDENT * 3}}};\n")

    def _progress(
        self, source: DataSource, table: TableDescriptor, row_index: int, row_count: int
    ) -> None:
        if self._on_progress is not None:
            self._on_progress(
                EmitContext(
                    source_name=source.name,
                    table_name=table.full_name,
                    row_index=row_index,
                    row_count=row_count,
                )
            )


def _check_unique(owner: str, members: dict[str, str]) -> None:
    """Raise DuplicateMemberError when two names map to the same member."""
    by_member: dict[str, list[str]] = {}
    for name, member in members.items():
        by_member.setdefault(member, []).append(name)
    for member, names in by_member.items():
        if len(names) > 1:
            raise DuplicateMemberError(owner, member, names)
