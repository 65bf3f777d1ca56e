"""Migration endpoints: connect, analyze, dry run, migrate, script export."""
import logging
from contextlib import AsyncExitStack
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from pgmig.api.deps import ConnectorDep, RegistryDep, connected
from pgmig.api.schemas import (
    AnalyzeRequest,
    ConnectRequest,
    MigrationRequest,
    QuickRequest,
    SourceBackupRequest,
)
from pgmig.core.analyze import analyze
from pgmig.core.backup import backup_filename, render_backup
from pgmig.core.migrate import execute_migration
from pgmig.core.plan import build_plan
from pgmig.core.script import render_script
from pgmig.database import Connector
from pgmig.models.connection import ConnectionDescriptor, DbSide
from pgmig.output.json import outcomes_to_dict, plan_to_dict, tables_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()


async def _test_connections(
    connector: Connector,
    source: ConnectionDescriptor,
    destination: ConnectionDescriptor
) -> Dict[str, Any]:
    # Source is checked first so the error names the leg that failed
    async with connected(connector, source, DbSide.SOURCE.value) as conn:
        await conn.ping()
    async with connected(connector, destination, DbSide.DESTINATION.value) as conn:
        await conn.ping()
    return {"success": True}


async def _migrate(
    connector: Connector,
    source: ConnectionDescriptor,
    destination: ConnectionDescriptor,
    options: QuickRequest
) -> Dict[str, Any]:
    async with AsyncExitStack() as stack:
        src = await stack.enter_async_context(
            connected(connector, source, DbSide.SOURCE.value)
        )
        dest = await stack.enter_async_context(
            connected(connector, destination, DbSide.DESTINATION.value)
        )
        outcomes = await execute_migration(
            src,
            dest,
            table_pattern=options.table_pattern,
            selected_tables=options.selected_tables,
            table_data_flags=options.table_data_flags
        )
    return outcomes_to_dict(outcomes)


@router.get("/config")
async def config_status(registry: RegistryDep) -> Dict[str, bool]:
    """Report which databases are preconfigured."""
    return registry.status()


@router.post("/connect")
async def connect(body: ConnectRequest, connector: ConnectorDep) -> Dict[str, Any]:
    """Prove both supplied connections can run a trivial query."""
    return await _test_connections(connector, body.source, body.destination)


@router.post("/quick-connect")
async def quick_connect(registry: RegistryDep, connector: ConnectorDep) -> Dict[str, Any]:
    """Like /connect, using the preconfigured connections."""
    return await _test_connections(
        connector, registry.get(DbSide.SOURCE), registry.get(DbSide.DESTINATION)
    )


@router.post("/analyze")
async def analyze_source(body: AnalyzeRequest, connector: ConnectorDep) -> Dict[str, Any]:
    """List matching source tables with approximate row counts and sizes."""
    async with connected(connector, body.source, DbSide.SOURCE.value) as conn:
        return tables_to_dict(await analyze(conn, body.table_pattern))


@router.post("/quick-analyze")
async def quick_analyze(
    body: QuickRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """Like /analyze, using the preconfigured source."""
    async with connected(connector, registry.get(DbSide.SOURCE), DbSide.SOURCE.value) as conn:
        return tables_to_dict(await analyze(conn, body.table_pattern))


@router.post("/dry-run")
async def dry_run(body: AnalyzeRequest, connector: ConnectorDep) -> Dict[str, Any]:
    """Preview the migration. Only the source is contacted."""
    async with connected(connector, body.source, DbSide.SOURCE.value) as conn:
        return plan_to_dict(await build_plan(conn, body.table_pattern))


@router.post("/quick-dry-run")
async def quick_dry_run(
    body: QuickRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """Like /dry-run, using the preconfigured source."""
    async with connected(connector, registry.get(DbSide.SOURCE), DbSide.SOURCE.value) as conn:
        return plan_to_dict(await build_plan(conn, body.table_pattern))


@router.post("/migrate")
async def migrate(body: MigrationRequest, connector: ConnectorDep) -> Dict[str, Any]:
    """Drop, recreate and reload every matching table in the destination."""
    options = QuickRequest(
        table_pattern=body.table_pattern,
        selected_tables=body.selected_tables,
        table_data_flags=body.table_data_flags
    )
    return await _migrate(connector, body.source, body.destination, options)


@router.post("/quick-migrate")
async def quick_migrate(
    body: QuickRequest, registry: RegistryDep, connector: ConnectorDep
) -> Dict[str, Any]:
    """Like /migrate, using the preconfigured connections."""
    return await _migrate(
        connector, registry.get(DbSide.SOURCE), registry.get(DbSide.DESTINATION), body
    )


@router.post("/generate-script")
async def generate_script(body: MigrationRequest) -> Dict[str, str]:
    """Export the migration as a standalone Python program."""
    return {"script": render_script(body.source, body.destination, body.table_pattern)}


def _attachment(text: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/download-source-backup")
async def download_source_backup(
    body: SourceBackupRequest, registry: RegistryDep, connector: ConnectorDep
) -> PlainTextResponse:
    """SQL text backup of the preconfigured source, taken before migrating."""
    async with connected(connector, registry.get(DbSide.SOURCE), DbSide.SOURCE.value) as conn:
        text = await render_backup(
            conn,
            "Source - Before Migration",
            selected_tables=body.selected_tables,
            table_pattern=body.table_pattern
        )
    return _attachment(text, backup_filename("source"))


@router.post("/download-backup")
async def download_backup(
    body: SourceBackupRequest, registry: RegistryDep, connector: ConnectorDep
) -> PlainTextResponse:
    """SQL text backup of the preconfigured destination, taken after migrating."""
    descriptor = registry.get(DbSide.DESTINATION)
    async with connected(connector, descriptor, DbSide.DESTINATION.value) as conn:
        text = await render_backup(
            conn,
            "Destination",
            selected_tables=body.selected_tables,
            table_pattern=body.table_pattern
        )
    return _attachment(text, backup_filename("destination"))
