"""Core functionality for data-scaffolder."""

from data_scaffolder.core.literals import format_literal
from data_scaffolder.core.models import (
    ColumnDescriptor,
    DataSource,
    EmitContext,
    NameMapping,
    RowBuffer,
    TableDescriptor,
)
from data_scaffolder.core.naming import sanitize_identifier

__all__ = [
    "ColumnDescriptor",
    "DataSource",
    "EmitContext",
    "NameMapping",
    "RowBuffer",
    "TableDescriptor",
    "format_literal",
    "sanitize_identifier",
]
