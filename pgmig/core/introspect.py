"""Schema introspection for the ``public`` schema."""
import logging
from typing import Any, Dict, Iterable, List, Optional

from pgmig.core.errors import TableNotFoundError
from pgmig.core.patterns import filter_tables, validate_identifier, validate_table_names
from pgmig.database.base import DatabaseAdapter
from pgmig.models.schema import ColumnSchema, TableSchema

logger = logging.getLogger(__name__)

TABLE_NAMES_QUERY = """
SELECT table_name
FROM information_schema.tables
WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
ORDER BY table_name
"""

TABLE_STATS_QUERY = """
SELECT
    t.table_name,
    COALESCE(s.n_live_tup, 0) AS row_count,
    COALESCE(pg_total_relation_size(
        quote_ident(t.table_schema) || '.' || quote_ident(t.table_name)
    ), 0) AS size_bytes
FROM information_schema.tables t
LEFT JOIN pg_stat_user_tables s
    ON s.relname = t.table_name AND s.schemaname = t.table_schema
WHERE t.table_schema = 'public' AND t.table_type = 'BASE TABLE'
ORDER BY t.table_name
"""

_COLUMNS_SELECT = """
SELECT
    c.table_name,
    c.column_name,
    c.data_type,
    c.is_nullable,
    c.column_default,
    c.character_maximum_length,
    c.ordinal_position,
    (pk.column_name IS NOT NULL) AS is_primary_key
FROM information_schema.columns c
JOIN information_schema.tables t
    ON t.table_schema = c.table_schema
    AND t.table_name = c.table_name
    AND t.table_type = 'BASE TABLE'
LEFT JOIN (
    SELECT kcu.table_name, kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
        AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_schema = 'public'
) pk ON pk.table_name = c.table_name AND pk.column_name = c.column_name
WHERE c.table_schema = 'public'
"""

ALL_COLUMNS_QUERY = _COLUMNS_SELECT + "ORDER BY c.table_name, c.ordinal_position\n"

TABLE_COLUMNS_QUERY = _COLUMNS_SELECT + "AND c.table_name = $1\nORDER BY c.ordinal_position\n"


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _row_to_column(row: Dict[str, Any]) -> ColumnSchema:
    max_length = row.get('character_maximum_length')
    return ColumnSchema(
        column_name=row['column_name'],
        data_type=row['data_type'],
        is_nullable=(row['is_nullable'] == 'YES'),
        default=row.get('column_default'),
        max_length=int(max_length) if max_length else None,
        ordinal_position=int(row['ordinal_position']),
        is_primary_key=bool(row.get('is_primary_key'))
    )


async def fetch_table_names(conn: DatabaseAdapter) -> List[str]:
    """Names of all base tables in ``public``, unfiltered."""
    rows = await conn.fetch(TABLE_NAMES_QUERY)
    return [r['table_name'] for r in rows]


async def discover_tables(
    conn: DatabaseAdapter,
    pattern: Optional[str] = None,
    selected: Optional[Iterable[str]] = None
) -> List[str]:
    """Base tables minus system tables, filtered by pattern and allow-list.

    A malformed name in the allow-list raises InvalidIdentifierError before
    the catalog is queried.
    """
    selected = validate_table_names(selected)
    names = filter_tables(await fetch_table_names(conn), pattern, selected)
    logger.info("Discovered %d tables matching %r", len(names), pattern or '%')
    return names


async def fetch_columns(conn: DatabaseAdapter, table_name: str) -> List[ColumnSchema]:
    """Columns of one table in ascending ordinal position."""
    validate_identifier(table_name)
    rows = await conn.fetch(TABLE_COLUMNS_QUERY, table_name)
    return [_row_to_column(r) for r in rows]


async def fetch_all_columns(conn: DatabaseAdapter) -> Dict[str, List[ColumnSchema]]:
    """Columns of every table from a single metadata query.

    Returns:
        Mapping of table name to columns. Tables appear in the order the
        query returns them (lexical); columns in ordinal order.
    """
    rows = await conn.fetch(ALL_COLUMNS_QUERY)
    grouped: Dict[str, List[ColumnSchema]] = {}
    for row in rows:
        grouped.setdefault(row['table_name'], []).append(_row_to_column(row))
    return grouped


def _build_table(name: str, columns: List[ColumnSchema], row_count: int = 0,
                 size_bytes: int = 0) -> TableSchema:
    return TableSchema(
        table_name=name,
        columns=columns,
        primary_keys=[c.column_name for c in columns if c.is_primary_key],
        row_count=row_count,
        size_bytes=size_bytes
    )


async def list_tables(
    conn: DatabaseAdapter,
    pattern: Optional[str] = None,
    include_columns: bool = True
) -> List[TableSchema]:
    """List base tables with statistics and, optionally, their columns.

    System tables are excluded before the pattern is applied. Row counts
    and sizes are estimates and default to 0 when no statistics exist.
    """
    stats = await conn.fetch(TABLE_STATS_QUERY)
    by_name = {r['table_name']: r for r in stats}
    names = filter_tables(by_name.keys(), pattern)

    columns: Dict[str, List[ColumnSchema]] = {}
    if include_columns and names:
        columns = await fetch_all_columns(conn)

    result = [
        _build_table(
            name,
            columns.get(name, []),
            row_count=_to_int(by_name[name].get('row_count')),
            size_bytes=_to_int(by_name[name].get('size_bytes'))
        )
        for name in names
    ]
    logger.info("Listed %d tables", len(result))
    return result


async def describe_table(conn: DatabaseAdapter, table_name: str) -> TableSchema:
    """Describe one table.

    Raises:
        InvalidIdentifierError: If ``table_name`` is not a valid identifier
        TableNotFoundError: If the table does not exist in ``public``
    """
    columns = await fetch_columns(conn, table_name)
    if not columns:
        raise TableNotFoundError(table_name)

    stats = await conn.fetchrow(
        """
        SELECT
            COALESCE(n_live_tup, 0) AS row_count,
            COALESCE(pg_total_relation_size(relid), 0) AS size_bytes
        FROM pg_stat_user_tables
        WHERE schemaname = 'public' AND relname = $1
        """,
        table_name
    )
    stats = stats or {}
    return _build_table(
        table_name,
        columns,
        row_count=_to_int(stats.get('row_count')),
        size_bytes=_to_int(stats.get('size_bytes'))
    )
