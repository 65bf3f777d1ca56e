"""Plain SQL text backup of a database's tables."""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pgmig.core.ddl import render_create, render_drop
from pgmig.core.introspect import discover_tables, fetch_columns
from pgmig.core.patterns import quote_ident
from pgmig.core.values import to_sql_literal
from pgmig.database.base import DatabaseAdapter

logger = logging.getLogger(__name__)


def backup_filename(db_label: str, generated_at: Optional[datetime] = None) -> str:
    """Download name such as ``backup_source_2024-05-01.sql``."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return f"backup_{db_label}_{generated_at.date().isoformat()}.sql"


async def _dump_table(conn: DatabaseAdapter, table_name: str) -> List[str]:
    columns = await fetch_columns(conn, table_name)
    lines = [
        "",
        f"-- Table: {table_name}",
        render_drop(table_name),
        render_create(table_name, columns),
    ]

    rows = await conn.fetch(f"SELECT * FROM {quote_ident(table_name)}")
    if rows:
        names = [c.column_name for c in columns]
        col_list = ", ".join(quote_ident(n) for n in names)
        lines.append("")
        lines.append(f"-- Data for {table_name}")
        for row in rows:
            values = ", ".join(to_sql_literal(row.get(n)) for n in names)
            lines.append(f"INSERT INTO {quote_ident(table_name)} ({col_list}) VALUES ({values});")
    return lines


async def render_backup(
    conn: DatabaseAdapter,
    label: str,
    selected_tables: Optional[Iterable[str]] = None,
    table_pattern: Optional[str] = None,
    generated_at: Optional[datetime] = None
) -> str:
    """Dump schema and data of every matching table as SQL text.

    The output is not a pg_dump archive: each table is a DROP, a CREATE
    from the same DDL rules as the migration, and one INSERT per row. A
    table that cannot be dumped is replaced by an error comment and the
    dump continues.

    Args:
        conn: Open connection to the database to dump
        label: Name written in the header, e.g. ``Source``
        selected_tables: Optional allow-list
        table_pattern: Optional LIKE-style filter
        generated_at: Header timestamp (default: now)

    Returns:
        SQL text
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [
        f"-- Database Backup ({label})",
        f"-- Generated: {generated_at.isoformat()}",
        "-- Format: SQL",
        "",
    ]

    table_names = await discover_tables(conn, table_pattern, selected_tables)
    for table_name in table_names:
        try:
            lines.extend(await _dump_table(conn, table_name))
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Error dumping table %s: %s", table_name, e)
            lines.append("")
            message = str(e).replace("\n", " ")
            lines.append(f"-- Error dumping table {table_name}: {message}")

    logger.info("Dumped %d tables for %s backup", len(table_names), label)
    return "\n".join(lines) + "\n"
