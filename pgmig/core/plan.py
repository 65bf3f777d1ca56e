"""Dry-run plan builder."""
import logging
from typing import Optional

from pgmig.core.ddl import render_create, render_drop
from pgmig.core.introspect import fetch_all_columns
from pgmig.core.patterns import filter_tables, is_valid_identifier
from pgmig.database.base import DatabaseAdapter
from pgmig.models.migration import (
    DATA_COPY_PLACEHOLDER,
    DROP_WARNING,
    ActionKind,
    MigrationPlan,
    PlanAction,
    TablePlan,
)

logger = logging.getLogger(__name__)


async def build_plan(source: DatabaseAdapter, table_pattern: Optional[str] = None) -> MigrationPlan:
    """Preview the actions a migration would perform, without performing them.

    Only the source is read. Columns for every table come from one metadata
    query; tables keep the query's lexical order.

    Args:
        source: Open source connection
        table_pattern: Optional LIKE-style filter

    Returns:
        MigrationPlan with [DROP, CREATE, copy placeholder] per table and a
        warning about destructive drops whenever the plan is non-empty.
    """
    grouped = await fetch_all_columns(source)
    tables = []
    warnings = []

    for table_name in filter_tables(grouped.keys(), table_pattern):
        if not is_valid_identifier(table_name):
            warnings.append(f"Skipping table with unsupported name: {table_name!r}")
            logger.warning("Skipping table with unsupported name %r", table_name)
            continue
        tables.append(TablePlan(
            table_name=table_name,
            actions=[
                PlanAction(kind=ActionKind.DROP, sql=render_drop(table_name)),
                PlanAction(kind=ActionKind.CREATE, sql=render_create(table_name, grouped[table_name])),
                PlanAction(kind=ActionKind.COMMENT, sql=DATA_COPY_PLACEHOLDER),
            ]
        ))

    if tables:
        warnings.insert(0, DROP_WARNING)

    logger.info("Built plan for %d tables", len(tables))
    return MigrationPlan(tables=tables, warnings=warnings)
