"""
Timestamp Stager

Builds the timestamp index (step1__trades_<source>): every distinct traded_at
of the source, deduplicated and ordered, ready to be consumed as a work queue.

Responsibilities:
- Rebuild the working copy (tmp__step1__...) from scratch
- Move distinct timestamps in bulk rounds: COPY out to a file, COPY the file in
- Advance a watermark so rounds never overlap or skip timestamps
- Rename the working copy into place once the source is exhausted

Rounds are not transactional. They only ever append timestamps newer than the
watermark, and an unfinished working copy is discarded by the next build.
"""

import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.constants import STAGE_BATCH_SIZE
from ..core.errors import BulkTransferError
from ..core.metrics import record_stage_round
from ..core.naming import TableNames, bulk_file_path
from ..persistence.repository import TradeTableRepository


logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    """Result of building a timestamp index."""

    index_table: str
    rounds: int = 0
    timestamps_staged: int = 0
    duration_seconds: float = 0.0


class TimestampStager:
    """
    Builds the timestamp index for one data source.

    Usage:
        stager = TimestampStager(repo, TableNames.for_source("bffx"))
        result = await stager.build()
    """

    def __init__(
        self,
        repository: TradeTableRepository,
        names: TableNames,
        batch_size: int = STAGE_BATCH_SIZE,
        bulk_dir: Optional[Path] = None,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.repository = repository
        self.names = names
        self.batch_size = batch_size
        self.bulk_dir = Path(bulk_dir) if bulk_dir else Path(tempfile.gettempdir())

    async def build(self) -> StageResult:
        """
        Build step1__trades_<source> from the source table.

        Returns:
            StageResult with round/timestamp statistics
        """
        start = time.monotonic()
        working = self.names.working_index
        result = StageResult(index_table=self.names.index)

        await self.repository.drop_table(working)
        await self.repository.create_index_table(working)
        logger.info(f"[{self.names.source_id}] Staging timestamps from {self.names.source} into {working}")

        while True:
            loaded = await self._stage_round(working, result.rounds)
            result.rounds += 1
            record_stage_round(self.names.source_id, loaded)
            if loaded == 0:
                break
            result.timestamps_staged += loaded

        await self.repository.rename_table(working, self.names.index)

        result.duration_seconds = time.monotonic() - start
        logger.info(
            f"[{self.names.source_id}] Staged {result.timestamps_staged} timestamps "
            f"in {result.rounds} rounds ({result.duration_seconds:.1f}s)"
        )
        return result

    async def _stage_round(self, working: str, round_number: int) -> int:
        """
        Move the next batch of distinct timestamps into the working index.

        Returns:
            Timestamps loaded (0 once the source is exhausted)
        """
        # None on the first round: export from the very first timestamp
        watermark = await self.repository.max_traded_at(working)
        path = bulk_file_path(self.bulk_dir, self.names.source_id)
        logger.debug(f"[{self.names.source_id}] round {round_number}: after {watermark} via {path}")

        try:
            exported = await self.repository.export_timestamps(
                self.names.source, path, watermark, self.batch_size
            )
            if exported == 0:
                return 0

            loaded = await self.repository.load_timestamps(working, path)
        finally:
            path.unlink(missing_ok=True)

        if loaded != exported:
            raise BulkTransferError(
                f"Bulk load into {working} wrote {loaded} rows, expected {exported}"
            )
        return loaded
