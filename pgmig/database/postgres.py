"""PostgreSQL adapter built on asyncpg."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import asyncpg

from pgmig.core.errors import DatabaseConnectionError
from pgmig.database.base import DatabaseAdapter
from pgmig.models.connection import ConnectionDescriptor

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10


class PostgresAdapter(DatabaseAdapter):
    """PostgreSQL adapter holding one asyncpg connection."""

    def __init__(self, side: str = "database", timeout: float = CONNECT_TIMEOUT):
        """Initialize PostgreSQL adapter.

        Args:
            side: Label used in connection errors (source, destination, ...)
            timeout: Connect timeout in seconds
        """
        self.side = side
        self.timeout = timeout
        self.conn: Optional[asyncpg.Connection] = None

    async def connect(self, descriptor: ConnectionDescriptor) -> None:
        try:
            self.conn = await asyncpg.connect(dsn=descriptor.to_dsn(), timeout=self.timeout)
            logger.info("Connected to %s database at %s", self.side, descriptor.masked_dsn())
        except (OSError, ValueError, asyncio.TimeoutError,
                asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("Failed to connect to %s database: %s", self.side, e)
            raise DatabaseConnectionError(self.side, str(e)) from e

    def _require_connection(self) -> asyncpg.Connection:
        if self.conn is None:
            raise DatabaseConnectionError(self.side, "not connected; call connect() first")
        return self.conn

    async def fetch(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        records = await self._require_connection().fetch(query, *args)
        return [dict(r) for r in records]

    async def fetchrow(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        record = await self._require_connection().fetchrow(query, *args)
        return dict(record) if record is not None else None

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._require_connection().fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        logger.debug("Executing on %s: %s", self.side, query)
        return await self._require_connection().execute(query, *args)

    async def close(self) -> None:
        """Close the asyncpg connection."""
        if self.conn:
            try:
                await self.conn.close()
                logger.info("Closed %s connection", self.side)
            except (OSError, asyncpg.InterfaceError) as e:
                logger.warning("Error closing %s connection: %s", self.side, e)
            finally:
                self.conn = None
