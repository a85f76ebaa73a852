"""
Trade Rollup Core Types

Row shapes for the raw execution tables and the published aggregates.

Timestamps are naive datetimes with millisecond precision, matching the
TIMESTAMP(3) columns. Amounts and prices are Decimals so that NUMERIC values
round-trip without float drift.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class RunOutcome(str, Enum):
    """Final state of one pipeline run for a data source."""
    PUBLISHED = "published"
    SKIPPED = "skipped"  # Target already existed
    FAILED = "failed"


class PipelinePhase(str, Enum):
    """Pipeline phases, used for metrics and log context."""
    STAGE = "stage"
    AGGREGATE = "aggregate"
    PUBLISH = "publish"


# =============================================================================
# Row Types
# =============================================================================

class ExecutionRecord(BaseModel):
    """One raw execution as stored in trades_<source>."""

    model_config = ConfigDict(frozen=True)

    traded_at: datetime = Field(..., description="Execution time (millisecond precision)")
    amount: Decimal = Field(..., description="Executed amount")
    price: Decimal = Field(..., description="Execution price")


class AggregatedRecord(BaseModel):
    """
    One row of ref_trades_<source>.

    amount is the sum of all executions at traded_at; price is their
    unweighted mean.
    """

    model_config = ConfigDict(frozen=True)

    traded_at: datetime = Field(..., description="Shared execution time (unique)")
    amount: Decimal = Field(..., description="Total executed amount")
    price: Decimal = Field(..., description="Mean execution price")
