"""
data-scaffolder - Freeze database tables into static C# data.

This package provides tools for:
- Reading eligible tables and columns from PostgreSQL catalogs
- Resolving class/property names from column annotations
- Formatting every cell as a typed C# literal
- Writing one DataFactory source file per settings document
"""

__version__ = "0.1.0"

from data_scaffolder.core.models import (
    ColumnDescriptor,
    DataSource,
    NameMapping,
    RowBuffer,
    TableDescriptor,
)
from data_scaffolder.scaffolder import ScaffoldResult, scaffold

__all__ = [
    "ColumnDescriptor",
    "DataSource",
    "NameMapping",
    "RowBuffer",
    "ScaffoldResult",
    "TableDescriptor",
    "scaffold",
    "__version__",
]
