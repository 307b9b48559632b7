"""Tests for table materialization."""

import pytest

from data_scaffolder.core.materializer import TableMaterializer, build_select
from data_scaffolder.core.models import ColumnDescriptor, TableDescriptor
from data_scaffolder.exceptions import MaterializeError


def _person() -> TableDescriptor:
    return TableDescriptor(
        schema_name="public",
        table_name="person",
        columns=[
            ColumnDescriptor(name="id", data_type="integer", ordinal_position=1),
            ColumnDescriptor(name="first_name", data_type="text", ordinal_position=2),
            ColumnDescriptor(name="balance", data_type="money", ordinal_position=4),
            ColumnDescriptor(name="born", data_type="timestamp without time zone", ordinal_position=5),
            ColumnDescriptor(name="is_active", data_type="boolean", ordinal_position=6),
        ],
    )


def test_build_select_lists_columns():
    """Select uses explicit quoted columns, never a wildcard."""
    query = build_select(_person()).as_string()

    assert query == (
        'SELECT "id", "first_name", "balance"::numeric AS "balance", "born", "is_active" '
        'FROM "public"."person" '
        'ORDER BY "id", "first_name", "balance", "born", "is_active"'
    )
    assert "*" not in query


def test_build_select_orders_by_primary_key():
    table = _person()
    table.primary_key = ["id", "first_name"]

    query = build_select(table).as_string()

    assert query.endswith('FROM "public"."person" ORDER BY "id", "first_name"')


def test_build_select_without_primary_key_orders_by_all_columns():
    """Tables without a key still come back in a fixed order."""
    table = TableDescriptor(
        schema_name="public",
        table_name="log",
        columns=[ColumnDescriptor(name="msg", data_type="text", ordinal_position=1)],
    )

    assert build_select(table).as_string() == 'SELECT "msg" FROM "public"."log" ORDER BY "msg"'


def test_build_select_unorderable_column_adds_ctid():
    table = TableDescriptor(
        schema_name="public",
        table_name="event",
        columns=[
            ColumnDescriptor(name="id", data_type="integer", ordinal_position=1),
            ColumnDescriptor(name="payload", data_type="json", ordinal_position=2),
        ],
    )

    query = build_select(table).as_string()

    assert query.endswith('FROM "public"."event" ORDER BY "id", ctid')


def test_build_select_only_unorderable_columns():
    table = TableDescriptor(
        schema_name="public",
        table_name="shape",
        columns=[ColumnDescriptor(name="area", data_type="polygon", ordinal_position=1)],
    )

    assert build_select(table).as_string().endswith("ORDER BY ctid")


def test_materialize_reads_rows(fake_db, source):
    """Rows come back aligned with the table's columns."""
    buffer = TableMaterializer(source, fake_db.connect).materialize(_person())

    assert len(buffer) == 2
    assert [c.name for c in buffer.columns] == ["id", "first_name", "balance", "born", "is_active"]
    assert buffer.rows[0][:2] == (1, "Bob")


def test_materialize_uses_utc_session_and_closes(fake_db, source):
    """One connection per table, in UTC, closed afterwards."""
    TableMaterializer(source, fake_db.connect).materialize(_person())

    assert fake_db.queries[0] == "SET TIME ZONE 'UTC'"
    assert len(fake_db.connections) == 1
    assert fake_db.connections[0].closed is True


def test_materialize_empty_table(fake_db, source):
    table = TableDescriptor(
        schema_name="public",
        table_name="empty_table",
        columns=[ColumnDescriptor(name="id", data_type="integer", ordinal_position=1)],
    )

    assert TableMaterializer(source, fake_db.connect).materialize(table).is_empty


def test_materialize_failure(fake_db, source):
    fake_db.fail_tables.add(("public", "person"))

    with pytest.raises(MaterializeError) as exc_info:
        TableMaterializer(source, fake_db.connect).materialize(_person())

    assert exc_info.value.table == "public.person"
    assert exc_info.value.source == "Default"
