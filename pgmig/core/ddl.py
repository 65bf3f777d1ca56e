"""DDL synthesis from introspected column metadata.

The output reproduces column type, nullability and default only. Indexes,
foreign keys, check constraints, identity columns and triggers are not
carried over.
"""
from typing import List

from pgmig.core.patterns import quote_ident, validate_identifier
from pgmig.models.schema import ColumnSchema


def render_drop(table_name: str) -> str:
    """Render the destructive drop that precedes every CREATE."""
    validate_identifier(table_name)
    return f"DROP TABLE IF EXISTS {quote_ident(table_name)} CASCADE;"


def render_column(column: ColumnSchema) -> str:
    """Render a single column clause.

    Type and default expression are passed through verbatim.
    """
    clause = f"{quote_ident(column.column_name)} {column.data_type}"
    if column.max_length:
        clause += f"({column.max_length})"
    if not column.is_nullable:
        clause += " NOT NULL"
    if column.default:
        clause += f" DEFAULT {column.default}"
    return clause


def render_create(table_name: str, columns: List[ColumnSchema]) -> str:
    """Render CREATE TABLE with one clause per column in ordinal order."""
    validate_identifier(table_name)
    ordered = sorted(columns, key=lambda c: c.ordinal_position)
    if not ordered:
        return f"CREATE TABLE {quote_ident(table_name)} ();"
    body = ",\n  ".join(render_column(c) for c in ordered)
    return f"CREATE TABLE {quote_ident(table_name)} (\n  {body}\n);"


def render_insert(table_name: str, column_names: List[str]) -> str:
    """Render a parameterised INSERT using asyncpg ``$n`` placeholders."""
    validate_identifier(table_name)
    cols = ", ".join(quote_ident(c) for c in column_names)
    placeholders = ", ".join(f"${i}" for i in range(1, len(column_names) + 1))
    return f"INSERT INTO {quote_ident(table_name)} ({cols}) VALUES ({placeholders})"
