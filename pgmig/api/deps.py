"""Request-scoped dependencies for the HTTP API."""
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator

from fastapi import Depends, Request

from pgmig.config.connection import ConnectionRegistry
from pgmig.database import Connector
from pgmig.database.base import DatabaseAdapter
from pgmig.models.connection import ConnectionDescriptor


def get_registry(request: Request) -> ConnectionRegistry:
    """Registry resolved at start-up and stored on the app."""
    return request.app.state.registry


def get_connector(request: Request) -> Connector:
    """Connection factory stored on the app (replaced by fakes in tests)."""
    return request.app.state.connector


RegistryDep = Annotated[ConnectionRegistry, Depends(get_registry)]
ConnectorDep = Annotated[Connector, Depends(get_connector)]


@asynccontextmanager
async def connected(
    connector: Connector,
    descriptor: ConnectionDescriptor,
    side: str
) -> AsyncIterator[DatabaseAdapter]:
    """Open a fresh connection for the duration of one request."""
    conn = await connector(descriptor, side)
    try:
        yield conn
    finally:
        await conn.close()
