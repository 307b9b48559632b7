"""Schema catalog reading: eligible tables and their readable columns."""

import logging
from collections.abc import Callable
from typing import Optional

import psycopg
from psycopg import Connection

from data_scaffolder.config import CatalogConfig
from data_scaffolder.core.models import ColumnDescriptor, DataSource, TableDescriptor
from data_scaffolder.exceptions import MetadataReadError

logger = logging.getLogger(__name__)

BASE_TABLE = "BASE TABLE"


def is_eligible_table(
    schema_name: str,
    table_name: str,
    table_type: str = BASE_TABLE,
    config: Optional[CatalogConfig] = None,
) -> bool:
    """
    Check whether a catalog entry should be scaffolded.

    Excludes views, migration-history tables, system/maintenance schemas and
    history schemas (e.g. audit_history).
    """
    config = config or CatalogConfig()
    if table_type != BASE_TABLE:
        return False
    if table_name in config.excluded_tables:
        return False
    if schema_name in config.excluded_schemas:
        return False
    if any(schema_name.startswith(prefix) for prefix in config.excluded_schema_prefixes):
        return False
    if any(schema_name.endswith(suffix) for suffix in config.excluded_schema_suffixes):
        return False
    return True


class SchemaCatalogReader:
    """Read table and column metadata for one data source."""

    def __init__(
        self,
        conn: Connection,
        source_name: str,
        config: Optional[CatalogConfig] = None,
    ):
        """
        Initialize reader.

        Args:
            conn: PostgreSQL connection
            source_name: Data source name, used in error messages
            config: Table exclusion rules (defaults apply when omitted)
        """
        self.conn = conn
        self.source_name = source_name
        self.config = config or CatalogConfig()

    def list_tables(self) -> list[TableDescriptor]:
        """
        Get all eligible base tables with their columns.

        Ordered by schema then table name, case-insensitively, independent of
        the order the server returns rows in.

        Raises:
            MetadataReadError: If a catalog query fails
        """
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT table_schema, table_name, table_type
                    FROM information_schema.tables
                    WHERE table_type = 'BASE TABLE'
                      AND table_schema NOT IN ('pg_catalog', 'information_schema')
                    ORDER BY lower(table_schema), lower(table_name)
                    """
                )
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise MetadataReadError(self.source_name, str(exc)) from exc

        tables = [
            TableDescriptor(schema_name=row[0], table_name=row[1])
            for row in rows
            if is_eligible_table(row[0], row[1], row[2], self.config)
        ]
        tables.sort(key=lambda t: t.sort_key)

        for table in tables:
            table.columns = self.list_columns(table.schema_name, table.table_name)
            table.primary_key = self.list_primary_key(table.schema_name, table.table_name)

        logger.debug("Found %d eligible tables in %s", len(tables), self.source_name)
        return tables

    def list_columns(self, schema_name: str, table_name: str) -> list[ColumnDescriptor]:
        """
        Get the readable columns of a table in ordinal order.

        Generated columns (GENERATED ALWAYS AS ... STORED) are left out.

        Raises:
            MetadataReadError: If the catalog query fails
        """
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT column_name, data_type, ordinal_position, is_generated
                    FROM information_schema.columns
                    WHERE table_schema = %s
                      AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (schema_name, table_name),
                )
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise MetadataReadError(self.source_name, str(exc)) from exc

        columns = [
            ColumnDescriptor(name=row[0], data_type=row[1], ordinal_position=int(row[2]))
            for row in rows
            if row[3] != "ALWAYS"
        ]
        columns.sort(key=lambda c: c.ordinal_position)
        return columns

    def list_primary_key(self, schema_name: str, table_name: str) -> list[str]:
        """
        Get the primary key columns of a table in key order.

        Returns an empty list for tables without a primary key.

        Raises:
            MetadataReadError: If the catalog query fails
        """
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT kcu.column_name
                    FROM information_schema.table_constraints tc
                    JOIN information_schema.key_column_usage kcu
                      ON tc.constraint_name = kcu.constraint_name
                      AND tc.table_schema = kcu.table_schema
                      AND tc.table_name = kcu.table_name
                    WHERE tc.constraint_type = 'PRIMARY KEY'
                      AND tc.table_schema = %s
                      AND tc.table_name = %s
                    ORDER BY kcu.ordinal_position
                    """,
                    (schema_name, table_name),
                )
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise MetadataReadError(self.source_name, str(exc)) from exc

        return [row[0] for row in rows]


def read_source_tables(
    source: DataSource,
    config: Optional[CatalogConfig] = None,
    connect: Callable[[DataSource], Connection] | None = None,
) -> list[TableDescriptor]:
    """
    Connect to a data source and list its eligible tables.

    The connection is closed before returning.

    Raises:
        MetadataReadError: If the source is unreachable or a catalog query fails
    """
    connect = connect or DataSource.connect
    try:
        with connect(source) as conn:
            return SchemaCatalogReader(conn, source.name, config).list_tables()
    except psycopg.Error as exc:
        raise MetadataReadError(source.name, str(exc)) from exc
