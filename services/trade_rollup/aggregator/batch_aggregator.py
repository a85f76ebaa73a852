"""
Batch Aggregator

Drains the timestamp index into the result table, one bounded transaction at
a time. Each batch deletes index entries and inserts their aggregates together,
so a crash loses at most the batch in flight and that batch is simply redone
by the next run.

Aggregation is fixed: amount = SUM (exact NUMERIC), price = unweighted AVG.
"""

import logging
import time
from dataclasses import dataclass

from ..core.constants import AGGREGATE_BATCH_SIZE
from ..core.metrics import record_aggregate_batch
from ..core.naming import TableNames
from ..persistence.repository import BatchOutcome, TradeTableRepository


logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Result of draining a timestamp index."""

    result_table: str
    batches: int = 0
    timestamps_consumed: int = 0
    rows_aggregated: int = 0
    duration_seconds: float = 0.0


class BatchAggregator:
    """
    Consumes step1__trades_<source> into step2__trades_<source>.

    Batches run strictly one after another: each one reads and mutates the
    same index table.

    Usage:
        aggregator = BatchAggregator(repo, TableNames.for_source("bffx"))
        result = await aggregator.run()
    """

    def __init__(
        self,
        repository: TradeTableRepository,
        names: TableNames,
        batch_size: int = AGGREGATE_BATCH_SIZE,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.repository = repository
        self.names = names
        self.batch_size = batch_size

    async def run(self) -> AggregationResult:
        """Run batches until the index is empty."""
        start = time.monotonic()
        result = AggregationResult(result_table=self.names.result)

        outcome = await self.run_batch()
        while not outcome.exhausted:
            result.batches += 1
            result.timestamps_consumed += outcome.consumed
            result.rows_aggregated += outcome.aggregated
            logger.debug(
                f"[{self.names.source_id}] batch {result.batches}: "
                f"{outcome.aggregated} rows ({result.rows_aggregated} total)"
            )
            outcome = await self.run_batch()

        result.duration_seconds = time.monotonic() - start
        logger.info(
            f"[{self.names.source_id}] Aggregated {result.rows_aggregated} rows "
            f"in {result.batches} batches ({result.duration_seconds:.1f}s)"
        )
        return result

    async def run_batch(self) -> BatchOutcome:
        """Aggregate and consume one batch of index entries."""
        outcome = await self.repository.move_aggregated_batch(
            self.names.source,
            self.names.index,
            self.names.result,
            self.batch_size,
        )
        if outcome.exhausted:
            return outcome

        record_aggregate_batch(self.names.source_id, outcome.aggregated)
        if outcome.aggregated < outcome.consumed:
            # Source rows vanished after staging
            logger.warning(
                f"[{self.names.source_id}] {outcome.consumed - outcome.aggregated} "
                f"index entries had no matching rows in {self.names.source}"
            )
        return outcome
