"""Abstract base class for database adapters."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pgmig.models.connection import ConnectionDescriptor


class DatabaseAdapter(ABC):
    """Request-scoped handle on one database.

    Every operation in pgmig talks to the database through this interface,
    so tests can substitute an in-memory implementation. Adapters are async
    context managers and are never shared between requests.
    """

    side: str = "database"

    @abstractmethod
    async def connect(self, descriptor: ConnectionDescriptor) -> None:
        """Open the connection.

        Args:
            descriptor: Validated connection descriptor

        Raises:
            DatabaseConnectionError: If the database is unreachable or
                rejects the credentials. The error is labelled with ``side``.
        """

    @abstractmethod
    async def fetch(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """Run a query and return every row as an ordered mapping.

        Args:
            query: SQL text using ``$n`` placeholders
            *args: Positional parameter values

        Returns:
            List of rows; each row maps column name to value in result order.
        """

    @abstractmethod
    async def fetchrow(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        """Run a query and return its first row, or None."""

    @abstractmethod
    async def fetchval(self, query: str, *args: Any) -> Any:
        """Run a query and return the first column of the first row."""

    @abstractmethod
    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return the server's status tag."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection.

        Should be idempotent (safe to call multiple times).
        """

    async def ping(self) -> None:
        """Issue a trivial query to prove the connection works."""
        await self.fetchval("SELECT 1")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
