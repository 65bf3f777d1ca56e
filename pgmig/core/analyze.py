"""Source analysis: which tables would a migration touch."""
import logging
from typing import List, Optional

from pgmig.core.introspect import list_tables
from pgmig.core.utils import format_bytes
from pgmig.database.base import DatabaseAdapter
from pgmig.models.schema import TableInfo

logger = logging.getLogger(__name__)

async def analyze(conn: DatabaseAdapter, table_pattern: Optional[str] = None) -> List[TableInfo]:
    """Summarise matching tables with approximate row counts and sizes.

    Args:
        conn: Open connection to the database to analyze
        table_pattern: Optional LIKE-style filter

    Returns:
        TableInfo per matching table, sorted by name. Counts are estimates
        from the statistics collector.
    """
    tables = await list_tables(conn, table_pattern, include_columns=False)
    result = [
        TableInfo(name=t.table_name, rows=t.row_count, size=format_bytes(t.size_bytes))
        for t in tables
    ]
    logger.debug("Analyzed %d tables", len(result))
    return result
