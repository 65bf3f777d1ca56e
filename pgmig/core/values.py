"""Rendering of dynamically typed row values.

Rows are open-ended mappings whose value types are only known at run time.
Values fall into one of a few variants (null, text, numeric, boolean,
temporal, raw) and each variant has one rendering per output: a SQL literal
for text dumps, a JSON-safe value for API responses and a text form for
typed query parameters.
"""
import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID


def _json_default(value: Any) -> Any:
    return to_json_value(value)


def to_json_value(value: Any) -> Any:
    """Convert a database value into something ``json.dumps`` accepts."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if value == value and value not in (float('inf'), float('-inf')) else str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return '\\x' + bytes(value).hex()
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return str(value)


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def to_sql_literal(value: Any) -> str:
    """Render a value as a SQL literal for a plain-text dump."""
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return _quote(str(value))
        return repr(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (datetime, date, time)):
        return _quote(value.isoformat())
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _quote('\\x' + bytes(value).hex())
    if isinstance(value, (dict, list, tuple)):
        return _quote(json.dumps(value, default=_json_default))
    return _quote(str(value))


def to_param_text(value: Any) -> Any:
    """Text form of a client-supplied value for a ``$n::text`` parameter.

    None stays None so it binds as SQL NULL.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=_json_default)
    return str(value)
