"""
Name overrides read from column annotations.

Annotations are PostgreSQL column comments. Each line of a comment may hold
one annotation:

    efcore:MyApp.Models=Person.FirstName

The key (left of '=') starts with the recognized prefix; the prefix stripped
from the key is the target namespace. The value is split on its first '.'
into the target class name and property name. Lines that don't match are
ignored, so ordinary column documentation can live in the same comment.

Unmapped columns fall back to their sanitized name. Unmapped tables fall back
to the raw table name as class name, which is emitted as is and must already
be a valid C# identifier; annotate the table to rename it otherwise.
"""

import logging
from typing import Optional

import psycopg
from psycopg import Connection

from data_scaffolder.core.models import NameMapping
from data_scaffolder.core.naming import sanitize_identifier
from data_scaffolder.exceptions import COLUMN_NAME, MetadataReadError

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_PREFIX = "efcore:"


def parse_annotation(
    schema_name: str,
    table_name: str,
    column_name: str,
    comment: str,
    prefix: str = DEFAULT_ANNOTATION_PREFIX,
) -> list[NameMapping]:
    """Parse every annotation line of a column comment."""
    mappings = []
    for line in comment.splitlines():
        line = line.strip()
        if not line.startswith(prefix) or "=" not in line:
            continue

        key, value = (part.strip() for part in line.split("=", 1))
        if "." not in value:
            continue

        class_name, property_name = value.split(".", 1)
        mappings.append(
            NameMapping(
                schema_name=schema_name,
                table_name=table_name,
                column_name=column_name,
                namespace=key[len(prefix) :],
                class_name=class_name,
                property_name=property_name,
                key=key,
            )
        )
    return mappings


def build_mappings(
    conn: Connection,
    source_name: str,
    prefix: str = DEFAULT_ANNOTATION_PREFIX,
) -> list[NameMapping]:
    """
    Read all name mappings of a data source.

    Returns an empty list when no column carries an annotation. The result is
    sorted by (annotation key, schema, table, column).

    Raises:
        MetadataReadError: If the annotation query fails
    """
    try:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT n.nspname, c.relname, a.attname, d.description
                FROM pg_catalog.pg_description d
                JOIN pg_catalog.pg_class c ON c.oid = d.objoid
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                JOIN pg_catalog.pg_attribute a
                  ON a.attrelid = c.oid
                  AND a.attnum = d.objsubid
                WHERE d.classoid = 'pg_catalog.pg_class'::regclass
                  AND d.objsubid > 0
                  AND NOT a.attisdropped
                  AND position(%s in d.description) > 0
                """,
                (prefix,),
            )
            rows = cur.fetchall()
    except psycopg.Error as exc:
        raise MetadataReadError(source_name, str(exc)) from exc

    mappings = [
        mapping
        for schema_name, table_name, column_name, comment in rows
        for mapping in parse_annotation(schema_name, table_name, column_name, comment, prefix)
    ]
    mappings.sort(key=lambda m: m.sort_key)
    logger.debug("Found %d name mappings in %s", len(mappings), source_name)
    return mappings


class MappingResolver:
    """Look up target class and property names for one data source."""

    def __init__(self, mappings: list[NameMapping]):
        self.mappings = sorted(mappings, key=lambda m: m.sort_key)
        self._classes: dict[tuple[str, str], str] = {}
        self._properties: dict[tuple[str, str, str], str] = {}

        # first mapping in sort order wins
        for mapping in self.mappings:
            table_key = (mapping.schema_name, mapping.table_name)
            column_key = (*table_key, mapping.column_name)
            self._classes.setdefault(table_key, mapping.class_name)
            self._properties.setdefault(column_key, mapping.property_name)

    @property
    def namespace(self) -> Optional[str]:
        """Namespace of the first mapping, or None without (non-empty) mappings."""
        for mapping in self.mappings:
            if mapping.namespace:
                return mapping.namespace
        return None

    def resolve(
        self, schema_name: str, table_name: str, column_name: str
    ) -> tuple[Optional[str], Optional[str]]:
        """Get (class name, property name); either may be None when unmapped."""
        return (
            self._classes.get((schema_name, table_name)),
            self._properties.get((schema_name, table_name, column_name)),
        )

    def class_name(self, schema_name: str, table_name: str) -> str:
        """Get the class name of a table, falling back to the raw table name."""
        return self._classes.get((schema_name, table_name), table_name)

    def property_name(self, schema_name: str, table_name: str, column_name: str) -> str:
        """Get the property name of a column, falling back to the sanitized column name."""
        mapped = self._properties.get((schema_name, table_name, column_name))
        if mapped is not None:
            return mapped
        return sanitize_identifier(column_name, COLUMN_NAME)
