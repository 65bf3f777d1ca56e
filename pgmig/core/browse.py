"""Generic table browsing and editing through parameterised queries."""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from pgmig.core.errors import TableNotFoundError, ValidationError
from pgmig.core.patterns import is_valid_identifier, quote_ident, validate_identifier
from pgmig.core.values import to_json_value, to_param_text
from pgmig.database.base import DatabaseAdapter
from pgmig.models.browse import MAX_PAGE_SIZE, RowOperation, SortDirection, TableDataPage
from pgmig.sql.guard import ensure_read_only

logger = logging.getLogger(__name__)

COLUMN_TYPES_QUERY = """
SELECT column_name, udt_schema, udt_name
FROM information_schema.columns
WHERE table_schema = 'public' AND table_name = $1
ORDER BY ordinal_position
"""


async def _column_types(conn: DatabaseAdapter, table_name: str) -> Dict[str, str]:
    """Map each column of ``table_name`` to a quoted type name, in ordinal order.

    Raises:
        TableNotFoundError: If the table has no columns in ``public``
    """
    rows = await conn.fetch(COLUMN_TYPES_QUERY, table_name)
    if not rows:
        raise TableNotFoundError(table_name)
    return {
        r['column_name']: f"{quote_ident(r['udt_schema'])}.{quote_ident(r['udt_name'])}"
        for r in rows
    }


def _json_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{k: to_json_value(v) for k, v in row.items()} for row in rows]


async def fetch_table_page(
    conn: DatabaseAdapter,
    table_name: str,
    page: int = 1,
    page_size: int = 50,
    order_by: Optional[str] = None,
    order_dir: SortDirection = SortDirection.ASC,
    search: Optional[str] = None
) -> TableDataPage:
    """Read one page of rows, optionally sorted and filtered.

    ``order_by`` is honoured only when it names a real column with a valid
    identifier; otherwise rows are ordered by the first column. ``search``
    is matched with ILIKE against every column cast to text.
    """
    validate_identifier(table_name)
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")

    column_names = list(await _column_types(conn, table_name))
    table = quote_ident(table_name)

    order_clause = "ORDER BY 1"
    if order_by and order_by in column_names and is_valid_identifier(order_by):
        direction = "DESC" if SortDirection(order_dir) == SortDirection.DESC else "ASC"
        order_clause = f"ORDER BY {quote_ident(order_by)} {direction}"

    params: List[Any] = []
    where_clause = ""
    term = search.strip() if search else ""
    if term:
        searchable = [c for c in column_names if is_valid_identifier(c)]
        if searchable:
            params.append(f"%{term}%")
            where_clause = "WHERE " + " OR ".join(
                f"CAST({quote_ident(c)} AS TEXT) ILIKE $1" for c in searchable
            )

    from_clause = f"FROM {table} {where_clause}".strip()
    total = await conn.fetchval(f"SELECT COUNT(*) {from_clause}", *params)
    n = len(params)
    rows = await conn.fetch(
        f"SELECT * {from_clause} {order_clause} LIMIT ${n + 1} OFFSET ${n + 2}",
        *params, page_size, (page - 1) * page_size
    )

    total_rows = int(total or 0)
    return TableDataPage(
        table_name=table_name,
        columns=column_names,
        rows=_json_rows(rows),
        total_rows=total_rows,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total_rows / page_size)
    )


def _valid_entries(values: Optional[Dict[str, Any]], types: Dict[str, str]) -> List[Tuple[str, Any]]:
    """Keep only keys that are real columns with valid identifiers."""
    return [
        (k, v) for k, v in (values or {}).items()
        if k in types and is_valid_identifier(k)
    ]


def _where_clause(
    entries: List[Tuple[str, Any]],
    types: Dict[str, str],
    params: List[Any]
) -> str:
    clauses = []
    for key, value in entries:
        if value is None:
            clauses.append(f"{quote_ident(key)} IS NULL")
        else:
            params.append(to_param_text(value))
            clauses.append(f"{quote_ident(key)} = CAST(${len(params)}::text AS {types[key]})")
    return " AND ".join(clauses)


async def mutate_row(
    conn: DatabaseAdapter,
    table_name: str,
    operation: RowOperation,
    data: Optional[Dict[str, Any]] = None,
    where: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Insert, update or delete rows by column predicate.

    Unknown or malformed column names in ``data``/``where`` are dropped.
    Values are bound as text and cast to the column's type on the server.

    Raises:
        ValidationError: On missing data/where or when no valid column remains
        TableNotFoundError: If the table does not exist
    """
    validate_identifier(table_name)
    operation = RowOperation(operation)
    table = quote_ident(table_name)

    if operation in (RowOperation.INSERT, RowOperation.UPDATE) and not data:
        raise ValidationError(f"Data is required for {operation.value} operation")
    if operation in (RowOperation.UPDATE, RowOperation.DELETE) and not where:
        raise ValidationError(f"Where clause is required for {operation.value} operation")

    types = await _column_types(conn, table_name)
    params: List[Any] = []

    if operation == RowOperation.INSERT:
        entries = _valid_entries(data, types)
        if not entries:
            raise ValidationError("No valid columns provided")
        cols = ", ".join(quote_ident(k) for k, _ in entries)
        placeholders = []
        for key, value in entries:
            params.append(to_param_text(value))
            placeholders.append(f"CAST(${len(params)}::text AS {types[key]})")
        rows = await conn.fetch(
            f"INSERT INTO {table} ({cols}) VALUES ({', '.join(placeholders)}) RETURNING *",
            *params
        )
        logger.info("Inserted row into %s", table_name)
        return {"success": True, "row": _json_rows(rows)[0] if rows else None}

    where_entries = _valid_entries(where, types)
    if not where_entries:
        raise ValidationError("No valid where columns provided")

    if operation == RowOperation.UPDATE:
        data_entries = _valid_entries(data, types)
        if not data_entries:
            raise ValidationError("No valid data columns provided")
        set_clauses = []
        for key, value in data_entries:
            params.append(to_param_text(value))
            set_clauses.append(f"{quote_ident(key)} = CAST(${len(params)}::text AS {types[key]})")
        condition = _where_clause(where_entries, types, params)
        rows = await conn.fetch(
            f"UPDATE {table} SET {', '.join(set_clauses)} WHERE {condition} RETURNING *",
            *params
        )
        logger.info("Updated %d rows in %s", len(rows), table_name)
        return {"success": True, "rowsAffected": len(rows), "rows": _json_rows(rows)}

    condition = _where_clause(where_entries, types, params)
    status = await conn.execute(f"DELETE FROM {table} WHERE {condition}", *params)
    affected = _affected_count(status)
    logger.info("Deleted %d rows from %s", affected, table_name)
    return {"success": True, "rowsAffected": affected, "message": "Row deleted successfully"}


def _affected_count(status: str) -> int:
    """Parse the row count out of a status tag such as ``DELETE 3``."""
    try:
        return int(str(status).rsplit(' ', 1)[-1])
    except (ValueError, IndexError):
        return 0


async def run_read_only_query(conn: DatabaseAdapter, query: str) -> Dict[str, Any]:
    """Run an ad hoc query after the read-only guard accepts it.

    Raises:
        UnsafeQueryError: If the guard rejects the query
    """
    if not query or not isinstance(query, str):
        raise ValidationError("Query is required")
    text = ensure_read_only(query)
    rows = await conn.fetch(text)
    return {"success": True, "rows": _json_rows(rows), "rowCount": len(rows)}
