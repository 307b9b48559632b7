"""
Core data models for data-scaffolder.

Defines the transient structures built during one scaffolding run: configured
data sources, catalog descriptors for tables and columns, name mappings read
from column annotations, and the in-memory row buffer of a table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import psycopg
from psycopg import Connection

from data_scaffolder.core.naming import sanitize_member_name


@dataclass(frozen=True)
class DataSource:
    """
    One configured connection to a PostgreSQL database.

    Attributes:
        name: Sanitized connection string key, used as the container name
        conninfo: libpq connection string or URL
        key: Raw key as written in the configuration document
    """

    name: str
    conninfo: str
    key: str = ""

    def connect(self) -> Connection:
        """Open a new autocommit connection (read-only use, no transaction)."""
        return psycopg.connect(self.conninfo, autocommit=True)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Represents a table column as reported by the catalog."""

    name: str
    data_type: str
    ordinal_position: int


@dataclass
class TableDescriptor:
    """Complete catalog information about a base table."""

    schema_name: str
    table_name: str
    columns: list[ColumnDescriptor] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        """Get fully qualified table name."""
        return f"{self.schema_name}.{self.table_name}"

    @property
    def record_name(self) -> str:
        """
        Get the name of the generated record collection.

        dbo.Person -> dbo_PersonRecords, public.order-items -> public_orderitemsRecords
        """
        return sanitize_member_name(f"{self.schema_name}_{self.table_name}Records")

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        """Case-insensitive (schema, table) ordering with a stable tie-break."""
        return (
            self.schema_name.casefold(),
            self.table_name.casefold(),
            self.schema_name,
            self.table_name,
        )


@dataclass(frozen=True)
class NameMapping:
    """
    A naming override read from a column annotation.

    Attributes:
        schema_name: Schema of the annotated column
        table_name: Table of the annotated column
        column_name: Annotated column
        namespace: Target namespace (annotation key with prefix stripped)
        class_name: Target class name for the table
        property_name: Target property name for the column
        key: Full annotation key, used for deterministic ordering
    """

    schema_name: str
    table_name: str
    column_name: str
    namespace: str
    class_name: str
    property_name: str
    key: str = ""

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        """Ordering used to break ties between conflicting annotations."""
        return (self.key, self.schema_name, self.table_name, self.column_name)


@dataclass
class RowBuffer:
    """
    All rows of one table, aligned with the column order they were read in.

    Attributes:
        table: Table the rows were read from
        columns: Columns in projection order
        rows: Row tuples, one value per column
    """

    table: TableDescriptor
    columns: list[ColumnDescriptor]
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class EmitContext:
    """
    Progress information handed to callers while a file is being emitted.

    row_index is 0 when a table starts and counts up to row_count.
    """

    source_name: str
    table_name: str
    row_index: int = 0
    row_count: int = 0
