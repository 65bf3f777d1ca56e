"""Database manager endpoints: browse, edit, back up and query one database."""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from pgmig.api.deps import ConnectorDep, RegistryDep, connected
from pgmig.api.schemas import BackupRequest, QueryRequest, RowMutationRequest, TableDataRequest
from pgmig.core.analyze import analyze
from pgmig.core.backup import backup_filename, render_backup
from pgmig.core.browse import fetch_table_page, mutate_row, run_read_only_query
from pgmig.core.introspect import describe_table
from pgmig.core.patterns import validate_identifier
from pgmig.models.connection import DbSide

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/db")


@router.get("/tables")
async def list_tables(
    registry: RegistryDep,
    connector: ConnectorDep,
    db: DbSide = Query(default=DbSide.SOURCE)
) -> Dict[str, Any]:
    """All user tables of the selected database."""
    async with connected(connector, registry.get(db), db.value) as conn:
        tables = await analyze(conn)
    return {"tables": [t.model_dump() for t in tables], "db": db.value}


@router.get("/structure/{table_name}")
async def table_structure(
    table_name: str,
    registry: RegistryDep,
    connector: ConnectorDep,
    db: DbSide = Query(default=DbSide.SOURCE)
) -> Dict[str, Any]:
    """Columns, primary keys and statistics of one table."""
    validate_identifier(table_name)
    async with connected(connector, registry.get(db), db.value) as conn:
        table = await describe_table(conn, table_name)
    return table.model_dump()


@router.post("/data")
async def table_data(
    body: TableDataRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """One page of rows."""
    async with connected(connector, registry.get(body.db), body.db.value) as conn:
        page = await fetch_table_page(
            conn,
            body.table_name,
            page=body.page,
            page_size=body.page_size,
            order_by=body.order_by,
            order_dir=body.order_dir,
            search=body.search
        )
    return page.model_dump(by_alias=True)


@router.post("/row")
async def row_mutation(
    body: RowMutationRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """Insert, update or delete rows."""
    async with connected(connector, registry.get(body.db), body.db.value) as conn:
        return await mutate_row(conn, body.table_name, body.operation, body.data, body.where)


@router.post("/backup")
async def backup(
    body: BackupRequest, registry: RegistryDep, connector: ConnectorDep
) -> PlainTextResponse:
    """SQL text backup of the selected database."""
    label = "Source" if body.db == DbSide.SOURCE else "Destination"
    async with connected(connector, registry.get(body.db), body.db.value) as conn:
        text = await render_backup(conn, label, selected_tables=body.selected_tables)
    return PlainTextResponse(
        text,
        headers={
            "Content-Disposition": f'attachment; filename="{backup_filename(body.db.value)}"'
        }
    )


@router.post("/query")
async def run_query(
    body: QueryRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """Read-only ad hoc SQL."""
    async with connected(connector, registry.get(body.db), body.db.value) as conn:
        return await run_read_only_query(conn, body.query)
