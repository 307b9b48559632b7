"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import datetime
import json
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import psycopg
import pytest

from data_scaffolder.core.models import DataSource


@dataclass
class FakeTable:
    """A table known to FakeDatabase."""

    table_type: str = "BASE TABLE"
    # (name, data_type, ordinal_position, is_generated)
    columns: list[tuple[str, str, int, str]] = field(default_factory=list)
    # Row tuples aligned with the non-generated columns in ordinal order
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    comments: dict[str, str] = field(default_factory=dict)
    primary_key: list[str] = field(default_factory=list)


class FakeCursor:
    """Answers the catalog, annotation and row queries data-scaffolder issues."""

    def __init__(self, db: FakeDatabase):
        self.db = db
        self._result: list[tuple[Any, ...]] = []

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        pass

    def execute(self, query: Any, params: Any = None) -> None:
        text = query if isinstance(query, str) else query.as_string()
        self.db.queries.append(text)

        if "SET TIME ZONE" in text:
            self._result = []
        elif "PRIMARY KEY" in text:
            self._result = [(name,) for name in self.db.tables[tuple(params)].primary_key]
        elif "information_schema.tables" in text:
            if self.db.fail_catalog:
                raise psycopg.OperationalError("catalog unavailable")
            # reverse order: callers must not rely on the server's ordering
            self._result = [
                (schema, table, info.table_type)
                for (schema, table), info in reversed(list(self.db.tables.items()))
            ]
        elif "information_schema.columns" in text:
            info = self.db.tables[tuple(params)]
            self._result = list(reversed(info.columns))
        elif "pg_description" in text:
            if self.db.fail_annotations:
                raise psycopg.OperationalError("annotations unavailable")
            self._result = [
                (schema, table, column, comment)
                for (schema, table), info in self.db.tables.items()
                for column, comment in info.comments.items()
                if params[0] in comment
            ]
        else:
            match = re.search(r'FROM "([^"]+)"\."([^"]+)"', text)
            key = (match.group(1), match.group(2))
            if key in self.db.fail_tables:
                raise psycopg.OperationalError(f"permission denied for table {key[1]}")
            self._result = list(self.db.tables[key].rows)

    def fetchall(self) -> list[tuple[Any, ...]]:
        return self._result


class FakeConnection:
    """Context-managed connection handing out FakeCursors."""

    def __init__(self, db: FakeDatabase):
        self.db = db
        self.closed = False

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.closed = True

    def cursor(self) -> FakeCursor:
        return FakeCursor(self.db)


@dataclass
class FakeDatabase:
    """In-memory stand-in for a PostgreSQL database."""

    tables: dict[tuple[str, str], FakeTable] = field(default_factory=dict)
    fail_tables: set[tuple[str, str]] = field(default_factory=set)
    fail_catalog: bool = False
    fail_annotations: bool = False
    fail_connect: bool = False
    queries: list[str] = field(default_factory=list)
    connections: list[FakeConnection] = field(default_factory=list)

    def connect(self, source: DataSource) -> FakeConnection:
        if self.fail_connect:
            raise psycopg.OperationalError(
                f"connection to {source.conninfo} failed: Connection refused"
            )
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn


def build_sample_database() -> FakeDatabase:
    """Database with eligible tables plus every kind of excluded object."""
    db = FakeDatabase()
    db.tables[("public", "person")] = FakeTable(
        columns=[
            ("id", "integer", 1, "NEVER"),
            ("first_name", "text", 2, "NEVER"),
            ("full_name", "text", 3, "ALWAYS"),
            ("balance", "money", 4, "NEVER"),
            ("born", "timestamp without time zone", 5, "NEVER"),
            ("is_active", "boolean", 6, "NEVER"),
        ],
        rows=[
            (1, "Bob", Decimal("12.50"), datetime.datetime(1980, 5, 1, 10, 30, 0, 123456), True),
            (2, None, Decimal("0.00"), datetime.datetime(1990, 12, 31, 23, 59, 59), False),
        ],
        primary_key=["id"],
    )
    db.tables[("public", "empty_table")] = FakeTable(
        columns=[("id", "integer", 1, "NEVER")],
    )
    db.tables[("Sales", "order")] = FakeTable(
        columns=[
            ("order_id", "integer", 1, "NEVER"),
            ("code", '"char"', 2, "NEVER"),
        ],
        rows=[(10, "A")],
    )
    db.tables[("audit_history", "person")] = FakeTable(
        columns=[("id", "integer", 1, "NEVER")], rows=[(1,)]
    )
    db.tables[("_maintenance", "jobs")] = FakeTable(
        columns=[("id", "integer", 1, "NEVER")], rows=[(1,)]
    )
    db.tables[("public", "__EFMigrationsHistory")] = FakeTable(
        columns=[("MigrationId", "character varying", 1, "NEVER")], rows=[("init",)]
    )
    db.tables[("public", "person_view")] = FakeTable(
        table_type="VIEW", columns=[("id", "integer", 1, "NEVER")], rows=[(1,)]
    )
    return db


@pytest.fixture
def fake_db() -> FakeDatabase:
    """Provide the sample in-memory database."""
    return build_sample_database()


@pytest.fixture
def source() -> DataSource:
    """Provide a data source pointing nowhere (used with fake_db.connect)."""
    return DataSource(name="Default", conninfo="postgresql://localhost/unused", key="Default")


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """
    Create a .NET-style project directory.

    Contains MyApp.csproj, a Models folder and appsettings.json with one
    connection string named "Default".
    """
    (tmp_path / "MyApp.csproj").write_text("<Project />")
    (tmp_path / "Models").mkdir()
    (tmp_path / "appsettings.json").write_text(
        json.dumps({"ConnectionStrings": {"Default": "postgresql://localhost/app"}})
    )
    return tmp_path
