"""Database adapters and the connection factory."""
import logging
from typing import Awaitable, Callable

from pgmig.database.base import DatabaseAdapter
from pgmig.database.postgres import PostgresAdapter
from pgmig.models.connection import ConnectionDescriptor

logger = logging.getLogger(__name__)

# Signature of every connection factory: (descriptor, side) -> open adapter.
# Operations accept one of these so tests can inject in-memory databases.
Connector = Callable[[ConnectionDescriptor, str], Awaitable[DatabaseAdapter]]


async def open_connection(descriptor: ConnectionDescriptor, side: str = "database") -> DatabaseAdapter:
    """Open a fresh, unpooled connection for one operation.

    Args:
        descriptor: Validated connection descriptor
        side: Label for error messages (source, destination, ...)

    Returns:
        Connected PostgresAdapter; the caller owns and must close it.

    Raises:
        DatabaseConnectionError: If the connection cannot be established
    """
    adapter = PostgresAdapter(side=side)
    await adapter.connect(descriptor)
    logger.debug("Opened %s connection", side)
    return adapter


__all__ = [
    'Connector',
    'DatabaseAdapter',
    'PostgresAdapter',
    'open_connection',
]
