"""Live migration executor."""
import logging
from typing import Dict, Iterable, List, Optional

from pgmig.core.ddl import render_create, render_drop, render_insert
from pgmig.core.introspect import discover_tables, fetch_columns
from pgmig.core.patterns import quote_ident, validate_identifier, validate_table_names
from pgmig.database.base import DatabaseAdapter
from pgmig.models.migration import MigrationStatus, TableMigrationOutcome
from pgmig.models.schema import ColumnSchema

logger = logging.getLogger(__name__)


def should_copy_data(table_name: str, table_data_flags: Optional[Dict[str, bool]]) -> bool:
    """Data is copied unless the table's flag is explicitly False."""
    if not table_data_flags:
        return True
    return table_data_flags.get(table_name) is not False


async def copy_rows(
    source: DatabaseAdapter,
    destination: DatabaseAdapter,
    table_name: str,
    columns: List[ColumnSchema]
) -> int:
    """Copy every source row with one parameterised INSERT per row.

    Rows are read in a single full scan. Every INSERT names the canonical
    ordinal column list, with NULLs passed explicitly. There is no
    transaction around the loop: a failure leaves the rows inserted so far.

    Returns:
        Number of rows inserted
    """
    column_names = [c.column_name for c in sorted(columns, key=lambda c: c.ordinal_position)]
    rows = await source.fetch(f"SELECT * FROM {quote_ident(table_name)}")

    if column_names:
        insert_sql = render_insert(table_name, column_names)
    else:
        insert_sql = f"INSERT INTO {quote_ident(table_name)} DEFAULT VALUES"

    copied = 0
    for row in rows:
        await destination.execute(insert_sql, *[row.get(name) for name in column_names])
        copied += 1
    return copied


async def migrate_table(
    source: DatabaseAdapter,
    destination: DatabaseAdapter,
    table_name: str,
    copy_data: bool = True
) -> TableMigrationOutcome:
    """Run drop, create and (optionally) copy for one table.

    Never raises: any failure becomes an error outcome, and a failure at
    drop/create means no copy is attempted.
    """
    try:
        validate_identifier(table_name)
        columns = await fetch_columns(source, table_name)

        await destination.execute(render_drop(table_name))
        await destination.execute(render_create(table_name, columns))
        logger.info("Recreated table %s (%d columns)", table_name, len(columns))

        rows_copied = 0
        if copy_data:
            rows_copied = await copy_rows(source, destination, table_name, columns)
            logger.info("Copied %d rows into %s", rows_copied, table_name)

        return TableMigrationOutcome.success(table_name, rows_copied)

    except Exception as e:  # pylint: disable=broad-except
        logger.error("Migration of table %s failed: %s", table_name, e)
        return TableMigrationOutcome.failure(table_name, str(e))


async def execute_migration(
    source: DatabaseAdapter,
    destination: DatabaseAdapter,
    table_pattern: Optional[str] = None,
    selected_tables: Optional[Iterable[str]] = None,
    table_data_flags: Optional[Dict[str, bool]] = None
) -> List[TableMigrationOutcome]:
    """Migrate every matching table from source to destination.

    Tables are processed one at a time. A failing table is recorded and
    the run continues with the next one; nothing is rolled back.

    Args:
        source: Open source connection
        destination: Open destination connection
        table_pattern: Optional LIKE-style filter
        selected_tables: Optional allow-list, intersected with the filter
        table_data_flags: Optional per-table flags; False skips the data copy

    Returns:
        One outcome per table.

    Raises:
        InvalidIdentifierError: If the allow-list or the flags name a
            malformed table; nothing is queried or executed.
    """
    selected_tables = validate_table_names(selected_tables)
    validate_table_names(table_data_flags)
    table_names = await discover_tables(source, table_pattern, selected_tables)

    outcomes = []
    for table_name in table_names:
        outcome = await migrate_table(
            source,
            destination,
            table_name,
            copy_data=should_copy_data(table_name, table_data_flags)
        )
        outcomes.append(outcome)

    failed = sum(1 for o in outcomes if o.status == MigrationStatus.ERROR)
    logger.info("Migration finished: %d tables, %d failed", len(outcomes), failed)
    return outcomes
