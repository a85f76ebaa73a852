# Trade Rollup Aggregator
# Staging, batch aggregation and publishing

"""
Aggregator module for rolling raw executions up by timestamp.

Components:
- TimestampStager: Builds the distinct-timestamp index with bulk COPY rounds
- BatchAggregator: Drains the index into the result table transactionally
- RollupPipeline: Orchestrates the phases and publishes the target
"""

from .batch_aggregator import AggregationResult, BatchAggregator
from .pipeline import PipelineResult, RollupPipeline
from .timestamp_stager import StageResult, TimestampStager

__all__ = [
    "AggregationResult",
    "BatchAggregator",
    "PipelineResult",
    "RollupPipeline",
    "StageResult",
    "TimestampStager",
]
