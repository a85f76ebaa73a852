"""
Database Connection

One asyncpg connection per rollup worker, opened when the worker starts and
closed when it finishes, whatever the outcome.
"""

import asyncio
import logging
from typing import Optional

import asyncpg

from ..core.errors import ConnectionSetupError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Scoped PostgreSQL connection for a single data source.

    Usage:
        async with DatabaseConnection(database_url, source="bffx") as conn:
            repo = TradeTableRepository(conn)
            ...
    """

    def __init__(
        self,
        database_url: str,
        source: Optional[str] = None,
        timeout: float = 60.0,
        application_name: str = "trade-rollup",
    ):
        self._database_url = database_url
        self._source = source
        self._timeout = timeout
        self._application_name = application_name
        self._conn: Optional[asyncpg.Connection] = None

    async def connect(self) -> asyncpg.Connection:
        """
        Open the connection.

        Returns:
            The live asyncpg connection

        Raises:
            ConnectionSetupError: If the store cannot be reached or rejects us
        """
        if self._conn is not None:
            logger.warning("Connection already open")
            return self._conn

        name = self._application_name
        if self._source:
            name = f"{name}:{self._source}"

        try:
            self._conn = await asyncpg.connect(
                self._database_url,
                timeout=self._timeout,
                server_settings={"application_name": name},
            )
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"[{self._source}] Failed to connect to database: {e}")
            raise ConnectionSetupError(f"Cannot connect to database for {self._source}: {e}") from e

        logger.info(f"[{self._source}] Database connection opened")
        return self._conn

    async def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.close()
            logger.info(f"[{self._source}] Database connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if the connection is open."""
        return self._conn is not None and not self._conn.is_closed()

    async def __aenter__(self) -> asyncpg.Connection:
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
