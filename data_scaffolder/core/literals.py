"""
Typed literal formatting.

Turns one cell value plus the column's declared PostgreSQL type into a C#
literal expression. Output is a pure function of the input so regenerating
against unchanged data yields an identical file.

Date and time values keep whole seconds only; sub-second precision and any
time zone offset are dropped (the wall-clock fields are emitted as read).
"""

import datetime
import json
import math
import uuid
from decimal import Decimal
from typing import Any

from data_scaffolder.exceptions import LiteralFormatError

NULL_LITERAL = "null"

BOOLEAN_TYPES = frozenset({"boolean"})
DATETIME_TYPES = frozenset(
    {"timestamp without time zone", "timestamp with time zone", "date"}
)
TIME_TYPES = frozenset({"time without time zone", "time with time zone", "interval"})
CHAR_TYPES = frozenset({'"char"'})
TEXT_TYPES = frozenset(
    {"text", "character varying", "character", "citext", "name", "xml"}
)
JSON_TYPES = frozenset({"json", "jsonb"})
DECIMAL_TYPES = frozenset({"numeric", "money"})
FLOAT_TYPES = frozenset({"double precision", "real"})
UUID_TYPES = frozenset({"uuid"})
BINARY_TYPES = frozenset({"bytea"})

_SIMPLE_ESCAPES = {
    "\\": "\\\\",
    "\0": "\\0",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def escape_string(value: str, quote: str = '"') -> str:
    """Escape backslashes, the given quote and control characters."""
    parts = []
    for char in value:
        if char == quote:
            parts.append("\\" + quote)
        elif char in _SIMPLE_ESCAPES:
            parts.append(_SIMPLE_ESCAPES[char])
        elif ord(char) < 0x20 or 0x7F <= ord(char) < 0xA0:
            parts.append(f"\\u{ord(char):04x}")
        else:
            parts.append(char)
    return "".join(parts)


def _format_datetime(value: Any) -> str:
    if isinstance(value, datetime.datetime):
        d = value
    elif isinstance(value, datetime.date):
        d = datetime.datetime(value.year, value.month, value.day)
    else:
        d = datetime.datetime.fromisoformat(str(value))
    return f"new DateTime({d.year},{d.month},{d.day},{d.hour},{d.minute},{d.second})"


def _format_time(value: Any) -> str:
    if isinstance(value, datetime.timedelta):
        seconds = math.floor(value.total_seconds())
        if value.days:
            days, rest = divmod(seconds, 86400)
            hours, rest = divmod(rest, 3600)
            minutes, secs = divmod(rest, 60)
            return f"new TimeSpan({days},{hours},{minutes},{secs})"
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        return f"new TimeSpan({hours},{minutes},{secs})"
    return f"new TimeSpan({value.hour},{value.minute},{value.second})"


def _format_decimal(value: Any, declared_type: str) -> str:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    # C# decimal has no NaN or infinities
    if not value.is_finite():
        raise LiteralFormatError(value, declared_type)
    return f"{value:f}M"


def _format_float(value: Any) -> str:
    value = float(value)
    if math.isnan(value):
        return "double.NaN"
    if math.isinf(value):
        return "double.PositiveInfinity" if value > 0 else "double.NegativeInfinity"
    return repr(value)


def _format_text(value: str, escape: bool) -> str:
    return f'"{escape_string(value) if escape else value}"'


def _format_char(value: str, escape: bool) -> str:
    if escape:
        value = escape_string(value, quote="'")
    return "'" + value + "'"


def format_literal(value: Any, declared_type: str, escape: bool = True) -> str:
    """
    Format a cell value as a C# literal.

    Args:
        value: Value as returned by the driver (None for SQL NULL)
        declared_type: information_schema data_type of the column
        escape: Escape quotes and control characters in string/char literals

    Returns:
        Literal text, e.g. 'null', 'true', '"Bob"', '12.50M',
        'new DateTime(2023,5,1,10,30,0)'

    Raises:
        LiteralFormatError: If a numeric value is NaN or infinite
    """
    if value is None:
        return NULL_LITERAL

    if declared_type in BOOLEAN_TYPES:
        return "true" if value else "false"
    if declared_type in DATETIME_TYPES:
        return _format_datetime(value)
    if declared_type in TIME_TYPES:
        return _format_time(value)
    if declared_type in CHAR_TYPES:
        return _format_char(str(value), escape)
    if declared_type in TEXT_TYPES:
        return _format_text(str(value), escape)
    if declared_type in JSON_TYPES:
        text = value if isinstance(value, str) else json.dumps(value)
        return _format_text(text, escape)
    if declared_type in DECIMAL_TYPES:
        return _format_decimal(value, declared_type)
    if declared_type in FLOAT_TYPES:
        return _format_float(value)
    if declared_type in UUID_TYPES:
        return f'new Guid("{uuid.UUID(str(value))}")'
    if declared_type in BINARY_TYPES:
        data = bytes(value)
        if not data:
            return "new byte[] { }"
        return "new byte[] { " + ", ".join(f"0x{b:02X}" for b in data) + " }"

    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
