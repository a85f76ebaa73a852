"""
Shared fixtures for trade rollup unit tests.

FakeTradeRepository keeps tables in memory and mirrors the behavior of
TradeTableRepository closely enough to drive the pipeline end to end:
bulk transfer goes through real files, batches are all-or-nothing, and
primary key / missing table violations raise StatementError.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional

import pytest

from services.trade_rollup.core.errors import StatementError
from services.trade_rollup.core.types import AggregatedRecord, ExecutionRecord
from services.trade_rollup.persistence.repository import BatchOutcome


class FakeTradeRepository:
    """In-memory stand-in for TradeTableRepository."""

    def __init__(self):
        self.sources: dict[str, list[ExecutionRecord]] = {}
        self.tables: dict[str, dict[datetime, Optional[tuple[Decimal, Decimal]]]] = {}
        self.calls: list[tuple] = []
        self.committed_batches = 0
        # Failure injection
        self.fail_after_batches: Optional[int] = None
        self.fail_load = False
        self.load_shortfall = 0

    # Seeding / inspection helpers

    def add_executions(self, table: str, rows: Iterable[tuple]) -> None:
        records = self.sources.setdefault(table, [])
        for traded_at, amount, price in rows:
            records.append(
                ExecutionRecord(traded_at=traded_at, amount=Decimal(str(amount)), price=Decimal(str(price)))
            )

    def aggregated(self, table: str) -> list[AggregatedRecord]:
        return [
            AggregatedRecord(traded_at=ts, amount=value[0], price=value[1])
            for ts, value in sorted(self.tables[table].items())
        ]

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    # Repository interface

    async def table_exists(self, table: str) -> bool:
        self.calls.append(("table_exists", table))
        return table in self.sources or table in self.tables

    async def drop_table(self, table: str) -> None:
        self.calls.append(("drop_table", table))
        self.tables.pop(table, None)
        self.sources.pop(table, None)

    async def rename_table(self, table: str, new_name: str) -> None:
        self.calls.append(("rename_table", table, new_name))
        if table not in self.tables:
            raise StatementError(f'relation "{table}" does not exist')
        if new_name in self.tables:
            raise StatementError(f'relation "{new_name}" already exists')
        self.tables[new_name] = self.tables.pop(table)

    async def create_index_table(self, table: str) -> None:
        self.calls.append(("create_index_table", table))
        self._create(table)

    async def create_result_table(self, table: str) -> None:
        self.calls.append(("create_result_table", table))
        self._create(table)

    async def count_rows(self, table: str) -> int:
        self.calls.append(("count_rows", table))
        return len(self._table(table))

    async def max_traded_at(self, table: str) -> Optional[datetime]:
        self.calls.append(("max_traded_at", table))
        rows = self._table(table)
        return max(rows) if rows else None

    async def export_timestamps(
        self, source_table: str, path: Path, watermark: Optional[datetime], limit: int
    ) -> int:
        self.calls.append(("export_timestamps", source_table, watermark, limit))
        if source_table not in self.sources:
            raise StatementError(f'relation "{source_table}" does not exist')
        distinct = sorted({
            r.traded_at for r in self.sources[source_table]
            if watermark is None or r.traded_at > watermark
        })
        selected = distinct[:limit]
        Path(path).write_text("".join(f"{ts.isoformat(sep=' ')}\n" for ts in selected))
        return len(selected)

    async def load_timestamps(self, table: str, path: Path) -> int:
        self.calls.append(("load_timestamps", table))
        if self.fail_load:
            raise StatementError("could not extend file: No space left on device")
        rows = self._table(table)
        lines = Path(path).read_text().splitlines()
        if self.load_shortfall:
            lines = lines[: len(lines) - self.load_shortfall]
        parsed = [datetime.fromisoformat(line) for line in lines]
        if any(ts in rows for ts in parsed):
            raise StatementError(f'duplicate key value violates unique constraint "{table}_pkey"')
        for ts in parsed:
            rows[ts] = None
        return len(parsed)

    async def move_aggregated_batch(
        self, source_table: str, index_table: str, result_table: str, limit: int
    ) -> BatchOutcome:
        self.calls.append(("move_aggregated_batch", index_table, limit))
        if self.fail_after_batches is not None and self.committed_batches >= self.fail_after_batches:
            raise StatementError("server closed the connection unexpectedly")

        index = self._table(index_table)
        result = self._table(result_table)
        batch = sorted(index)[:limit]

        aggregates = {}
        for ts in batch:
            group = [r for r in self.sources.get(source_table, []) if r.traded_at == ts]
            if not group:
                continue
            if ts in result:
                raise StatementError(f'duplicate key value violates unique constraint "{result_table}_pkey"')
            total = sum((r.amount for r in group), Decimal(0))
            mean = sum((r.price for r in group), Decimal(0)) / len(group)
            aggregates[ts] = (total, mean)

        # Commit
        for ts in batch:
            del index[ts]
        result.update(aggregates)
        if batch:
            self.committed_batches += 1
        return BatchOutcome(consumed=len(batch), aggregated=len(aggregates))

    async def publish(self, result_table: str, target_table: str, index_table: str) -> None:
        self.calls.append(("publish", result_table, target_table, index_table))
        if result_table not in self.tables or target_table in self.tables:
            raise StatementError(f"cannot rename {result_table} to {target_table}")
        self.tables[target_table] = self.tables.pop(result_table)
        self.tables.pop(index_table, None)

    def _create(self, table: str) -> None:
        if table in self.tables or table in self.sources:
            raise StatementError(f'relation "{table}" already exists')
        self.tables[table] = {}

    def _table(self, table: str) -> dict:
        if table not in self.tables:
            raise StatementError(f'relation "{table}" does not exist')
        return self.tables[table]


@pytest.fixture
def fake_repo():
    """Empty in-memory repository."""
    return FakeTradeRepository()


@pytest.fixture
def bffx_repo(fake_repo):
    """Repository seeded with the trades_bffx example rows."""
    fake_repo.add_executions(
        "trades_bffx",
        [
            (datetime(2021, 1, 1, 0, 0, 0), "1.0", "100.0"),
            (datetime(2021, 1, 1, 0, 0, 0), "2.0", "102.0"),
            (datetime(2021, 1, 1, 0, 0, 0, 500_000), "5.0", "50.0"),
        ],
    )
    return fake_repo


@pytest.fixture
def make_repo():
    """Factory for additional empty repositories within one test."""
    return FakeTradeRepository
