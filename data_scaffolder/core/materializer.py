"""Table materialization - reads every row of one table into memory."""

from collections.abc import Callable

import psycopg
from psycopg import Connection, sql

from data_scaffolder.core.models import ColumnDescriptor, DataSource, RowBuffer, TableDescriptor
from data_scaffolder.exceptions import MaterializeError

# Read as numeric so values arrive as Decimal whatever lc_monetary is
_NUMERIC_CASTS = frozenset({"money"})

# Types without a default btree ordering
_UNORDERABLE_TYPES = frozenset(
    {"json", "xml", "point", "line", "lseg", "box", "path", "polygon", "circle",
     "ARRAY", "USER-DEFINED"}
)


def _order_by(table: TableDescriptor) -> list[sql.Composable]:
    if table.primary_key:
        return [sql.Identifier(name) for name in table.primary_key]

    keys: list[sql.Composable] = [
        sql.Identifier(col.name)
        for col in table.columns
        if col.data_type not in _UNORDERABLE_TYPES
    ]
    if not keys or len(keys) < len(table.columns):
        # ties between rows differing only in unorderable columns
        keys.append(sql.SQL("ctid"))
    return keys


def build_select(table: TableDescriptor) -> sql.Composed:
    """
    Build the SELECT for a table with an explicit column list.

    Columns are projected in ordinal order; a wildcard is never used so the
    value order always matches table.columns. Rows are ordered by the primary
    key when the table has one, otherwise by every orderable column, with
    ctid as the last key when some column cannot be ordered.
    """
    fields = []
    for col in table.columns:
        ident = sql.Identifier(col.name)
        if col.data_type in _NUMERIC_CASTS:
            fields.append(sql.SQL("{}::numeric AS {}").format(ident, ident))
        else:
            fields.append(ident)

    return sql.SQL("SELECT {fields} FROM {table} ORDER BY {keys}").format(
        fields=sql.SQL(", ").join(fields),
        table=sql.Identifier(table.schema_name, table.table_name),
        keys=sql.SQL(", ").join(_order_by(table)),
    )


class TableMaterializer:
    """
    Read all rows of a table using one short-lived connection per table.

    Sessions run in UTC so timestamptz values don't depend on the server's
    or client's time zone setting.
    """

    def __init__(
        self,
        source: DataSource,
        connect: Callable[[DataSource], Connection] | None = None,
    ):
        """
        Initialize materializer.

        Args:
            source: Data source to read from
            connect: Connection factory (defaults to DataSource.connect)
        """
        self.source = source
        self._connect = connect or DataSource.connect

    def materialize(self, table: TableDescriptor) -> RowBuffer:
        """
        Fetch every row of a table.

        Returns:
            RowBuffer with rows aligned to table.columns

        Raises:
            MaterializeError: If the rows cannot be read
        """
        columns: list[ColumnDescriptor] = list(table.columns)
        if not columns:
            return RowBuffer(table=table, columns=columns)

        try:
            with self._connect(self.source) as conn:
                with conn.cursor() as cur:
                    cur.execute("SET TIME ZONE 'UTC'")
                    cur.execute(build_select(table))
                    rows = [tuple(row) for row in cur.fetchall()]
        except psycopg.Error as exc:
            raise MaterializeError(self.source.name, table.full_name, str(exc)) from exc

        return RowBuffer(table=table, columns=columns, rows=rows)
