"""
Trade Table Repository

Every statement the rollup pipeline sends to PostgreSQL, bound to one
worker's connection.

Table schemas:
    -- Raw executions (external, append-only)
    CREATE TABLE trades_<source> (
        traded_at TIMESTAMP(3) NOT NULL,
        amount    NUMERIC NOT NULL,
        price     NUMERIC NOT NULL
    );

    -- Timestamp index / work queue
    CREATE TABLE step1__trades_<source> (
        traded_at TIMESTAMP(3) NOT NULL PRIMARY KEY
    );

    -- Aggregation result, renamed to ref_trades_<source> on publish
    CREATE TABLE step2__trades_<source> (
        traded_at TIMESTAMP(3) NOT NULL PRIMARY KEY,
        amount    NUMERIC NOT NULL,
        price     NUMERIC NOT NULL
    );

Table names are validated and quoted by core.naming; all values travel as
$n parameters.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import asyncpg

from ..core.errors import BulkTransferError, StatementError
from ..core.naming import quote_identifier


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one aggregation transaction."""

    consumed: int  # Index entries deleted
    aggregated: int  # Rows inserted into the result table

    @property
    def exhausted(self) -> bool:
        """True when the index had nothing left to consume."""
        return self.consumed == 0


def _affected_rows(status: Optional[str]) -> int:
    """Parse the row count from a command tag such as 'COPY 42'."""
    if not status:
        return 0
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError):
        return 0


class TradeTableRepository:
    """
    Table operations for the rollup of one data source.

    Usage:
        repo = TradeTableRepository(conn)
        if not await repo.table_exists("ref_trades_bffx"):
            ...
    """

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    # =========================================================================
    # Table management
    # =========================================================================

    async def table_exists(self, table: str) -> bool:
        """Check whether a table exists in the current schema."""
        query = """
            SELECT EXISTS (
                SELECT 1 FROM information_schema.tables
                WHERE table_schema = current_schema()
                  AND table_name = $1
            )
        """
        try:
            return bool(await self.conn.fetchval(query, table))
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to check existence of {table}: {e}")
            raise StatementError(f"Existence check failed for {table}: {e}") from e

    async def drop_table(self, table: str) -> None:
        """Drop a table if it exists."""
        await self._execute(f"drop {table}", f"DROP TABLE IF EXISTS {quote_identifier(table)}")

    async def rename_table(self, table: str, new_name: str) -> None:
        """Rename a table."""
        await self._execute(
            f"rename {table} to {new_name}",
            f"ALTER TABLE {quote_identifier(table)} RENAME TO {quote_identifier(new_name)}",
        )

    async def create_index_table(self, table: str) -> None:
        """Create an empty timestamp index table."""
        await self._execute(
            f"create {table}",
            f"""
            CREATE TABLE {quote_identifier(table)} (
                traded_at TIMESTAMP(3) NOT NULL PRIMARY KEY
            )
            """,
        )

    async def create_result_table(self, table: str) -> None:
        """Create an empty aggregation result table."""
        await self._execute(
            f"create {table}",
            f"""
            CREATE TABLE {quote_identifier(table)} (
                traded_at TIMESTAMP(3) NOT NULL PRIMARY KEY,
                amount    NUMERIC NOT NULL,
                price     NUMERIC NOT NULL
            )
            """,
        )

    async def count_rows(self, table: str) -> int:
        """Count the rows of a table."""
        try:
            return int(await self.conn.fetchval(f"SELECT COUNT(*) FROM {quote_identifier(table)}"))
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to count rows of {table}: {e}")
            raise StatementError(f"Row count failed for {table}: {e}") from e

    async def max_traded_at(self, table: str) -> Optional[datetime]:
        """Latest traded_at in a table, or None when it is empty."""
        try:
            return await self.conn.fetchval(f"SELECT MAX(traded_at) FROM {quote_identifier(table)}")
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to read watermark of {table}: {e}")
            raise StatementError(f"Watermark query failed for {table}: {e}") from e

    # =========================================================================
    # Bulk timestamp transfer
    # =========================================================================

    async def export_timestamps(
        self,
        source_table: str,
        path: Path,
        watermark: Optional[datetime],
        limit: int,
    ) -> int:
        """
        Write the next distinct timestamps after a watermark to a file.

        Args:
            source_table: Raw executions table
            path: Destination file (created or truncated)
            watermark: Exclusive lower bound on traded_at, None for no bound
            limit: Maximum number of distinct timestamps to write

        Returns:
            Number of timestamps written (0 when the source is exhausted)
        """
        args = [limit]
        lower_bound = ""
        if watermark is not None:
            lower_bound = "WHERE traded_at > $2::timestamp"
            args.append(watermark)

        query = f"""
            SELECT DISTINCT traded_at
            FROM {quote_identifier(source_table)}
            {lower_bound}
            ORDER BY traded_at
            LIMIT $1
        """
        try:
            status = await self.conn.copy_from_query(
                query, *args, output=str(path), format="text"
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to export timestamps from {source_table}: {e}")
            raise StatementError(f"Timestamp export failed for {source_table}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to write bulk file {path}: {e}")
            raise BulkTransferError(f"Cannot write bulk file {path}: {e}") from e

        return _affected_rows(status)

    async def load_timestamps(self, table: str, path: Path) -> int:
        """
        Bulk-load a timestamp file into an index table.

        Returns:
            Number of rows loaded
        """
        try:
            status = await self.conn.copy_to_table(
                table, source=str(path), columns=["traded_at"], format="text"
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to load timestamps into {table}: {e}")
            raise StatementError(f"Timestamp load failed for {table}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to read bulk file {path}: {e}")
            raise BulkTransferError(f"Cannot read bulk file {path}: {e}") from e

        return _affected_rows(status)

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def move_aggregated_batch(
        self,
        source_table: str,
        index_table: str,
        result_table: str,
        limit: int,
    ) -> BatchOutcome:
        """
        Aggregate and consume up to `limit` index entries in one transaction.

        The oldest entries are deleted from the index and the very same set is
        joined against the source, so the delete and the insert always cover
        identical timestamps. Either both take effect or neither does.

        Returns:
            BatchOutcome with consumed/aggregated counts
        """
        src = quote_identifier(source_table)
        idx = quote_identifier(index_table)
        res = quote_identifier(result_table)

        query = f"""
            WITH batch AS (
                DELETE FROM {idx}
                WHERE traded_at IN (
                    SELECT traded_at FROM {idx}
                    ORDER BY traded_at
                    LIMIT $1
                )
                RETURNING traded_at
            ),
            inserted AS (
                INSERT INTO {res} (traded_at, amount, price)
                SELECT t.traded_at, SUM(t.amount), AVG(t.price)
                FROM batch b
                JOIN {src} t ON t.traded_at = b.traded_at
                GROUP BY t.traded_at
                RETURNING traded_at
            )
            SELECT
                (SELECT COUNT(*) FROM batch) AS consumed,
                (SELECT COUNT(*) FROM inserted) AS aggregated
        """
        try:
            async with self.conn.transaction():
                row = await self.conn.fetchrow(query, limit)
        except asyncpg.PostgresError as e:
            logger.error(f"Aggregation batch failed for {index_table}: {e}")
            raise StatementError(f"Aggregation batch failed for {index_table}: {e}") from e

        return BatchOutcome(consumed=int(row["consumed"]), aggregated=int(row["aggregated"]))

    async def publish(self, result_table: str, target_table: str, index_table: str) -> None:
        """
        Make the result visible under its final name and discard the index.

        Both steps commit together: a reader sees either no target or the
        complete one, and a published target never leaves its index behind.
        """
        try:
            async with self.conn.transaction():
                await self.conn.execute(
                    f"ALTER TABLE {quote_identifier(result_table)} "
                    f"RENAME TO {quote_identifier(target_table)}"
                )
                await self.conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(index_table)}")
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to publish {result_table} as {target_table}: {e}")
            raise StatementError(f"Publish failed for {target_table}: {e}") from e

        logger.info(f"Published {target_table}")

    async def _execute(self, description: str, query: str, *args) -> str:
        """Execute a statement that returns no rows."""
        try:
            return await self.conn.execute(query, *args)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to {description}: {e}")
            raise StatementError(f"Failed to {description}: {e}") from e
