"""
Rollup Pipeline

Sequences the phases for one data source and decides, from the tables that
already exist, where a run has to pick up:

    ref_trades_<s> exists          -> nothing to do
    step1__trades_<s> missing      -> stage timestamps, start a fresh result
    step1__trades_<s> present      -> resume; keep step2 if it is there
    then                           -> aggregate to exhaustion, publish

Publishing renames step2 to ref_trades_<s> and drops step1 in one
transaction, so the target is either absent or complete.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.constants import AGGREGATE_BATCH_SIZE, STAGE_BATCH_SIZE
from ..core.errors import RollupError, SourceTableMissingError
from ..core.metrics import observe_phase, record_pipeline_run
from ..core.naming import TableNames
from ..core.types import PipelinePhase, RunOutcome
from ..persistence.repository import TradeTableRepository
from .batch_aggregator import AggregationResult, BatchAggregator
from .timestamp_stager import StageResult, TimestampStager


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of one pipeline run."""

    source: str
    outcome: RunOutcome
    index_rebuilt: bool = False
    stage: Optional[StageResult] = None
    aggregation: Optional[AggregationResult] = None
    duration_seconds: float = 0.0


class RollupPipeline:
    """
    Runs stage -> aggregate -> publish for one data source.

    Usage:
        pipeline = RollupPipeline(TradeTableRepository(conn), "bffx")
        result = await pipeline.run()
    """

    def __init__(
        self,
        repository: TradeTableRepository,
        source: str,
        stage_batch_size: int = STAGE_BATCH_SIZE,
        aggregate_batch_size: int = AGGREGATE_BATCH_SIZE,
        bulk_dir: Optional[Path] = None,
    ):
        self.repository = repository
        self.names = TableNames.for_source(source)
        self.stager = TimestampStager(repository, self.names, stage_batch_size, bulk_dir)
        self.aggregator = BatchAggregator(repository, self.names, aggregate_batch_size)

    async def run(self) -> PipelineResult:
        """
        Bring ref_trades_<source> into existence.

        Returns:
            PipelineResult (outcome PUBLISHED or SKIPPED)

        Raises:
            RollupError: On any failure; nothing is published and the next run
                resumes from the tables left behind
        """
        source = self.names.source_id
        try:
            result = await self._run()
        except RollupError:
            record_pipeline_run(source, RunOutcome.FAILED.value)
            logger.error(f"[{source}] Rollup failed, target {self.names.target} not published")
            raise

        record_pipeline_run(source, result.outcome.value)
        return result

    async def _run(self) -> PipelineResult:
        start = time.monotonic()
        names = self.names
        result = PipelineResult(source=names.source_id, outcome=RunOutcome.SKIPPED)

        logger.info(f"[{names.source_id}] Start rollup: {names.source} -> {names.target}")

        if await self.repository.table_exists(names.target):
            logger.info(f"[{names.source_id}] {names.target} already exists, skipping")
            result.duration_seconds = time.monotonic() - start
            return result

        if not await self.repository.table_exists(names.source):
            raise SourceTableMissingError(f"Source table {names.source} does not exist")

        # Phase 1: timestamp index
        if await self.repository.table_exists(names.index):
            remaining = await self.repository.count_rows(names.index)
            logger.info(f"[{names.source_id}] Resuming with {remaining} timestamps left in {names.index}")
        else:
            result.stage = await self.stager.build()
            result.index_rebuilt = True
            observe_phase(names.source_id, PipelinePhase.STAGE.value, result.stage.duration_seconds)

        # Phase 2: result staging
        if result.index_rebuilt or not await self.repository.table_exists(names.result):
            await self._reset_result_table()
        else:
            logger.info(f"[{names.source_id}] Keeping partial results in {names.result}")

        result.aggregation = await self.aggregator.run()
        observe_phase(names.source_id, PipelinePhase.AGGREGATE.value, result.aggregation.duration_seconds)

        # Phase 3: publish
        publish_start = time.monotonic()
        await self.repository.publish(names.result, names.target, names.index)
        observe_phase(names.source_id, PipelinePhase.PUBLISH.value, time.monotonic() - publish_start)

        result.outcome = RunOutcome.PUBLISHED
        result.duration_seconds = time.monotonic() - start
        logger.info(f"[{names.source_id}] Finished rollup in {result.duration_seconds:.1f}s")
        return result

    async def _reset_result_table(self) -> None:
        """Start step2__trades_<source> empty."""
        await self.repository.drop_table(self.names.result)
        await self.repository.create_result_table(self.names.result)
        logger.info(f"[{self.names.source_id}] Created empty {self.names.result}")
