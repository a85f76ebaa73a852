# Trade Rollup Core Modules
"""
Shared building blocks for the rollup pipeline.

Modules:
- types: Row models and enums
- constants: Table prefixes, batch sizes, defaults
- naming: Table name derivation and identifier validation
- errors: Exception hierarchy
- metrics: Prometheus metrics
"""

from .types import (
    AggregatedRecord,
    ExecutionRecord,
    PipelinePhase,
    RunOutcome,
)

from .constants import (
    AGGREGATE_BATCH_SIZE,
    DEFAULT_SOURCES,
    STAGE_BATCH_SIZE,
)

from .errors import (
    BulkTransferError,
    ConnectionSetupError,
    InvalidSourceNameError,
    RollupError,
    SourceTableMissingError,
    StatementError,
)

from .naming import (
    TableNames,
    bulk_file_path,
    quote_identifier,
    validate_source_name,
)

__all__ = [
    # Types
    "AggregatedRecord",
    "ExecutionRecord",
    "PipelinePhase",
    "RunOutcome",
    # Constants
    "AGGREGATE_BATCH_SIZE",
    "DEFAULT_SOURCES",
    "STAGE_BATCH_SIZE",
    # Errors
    "BulkTransferError",
    "ConnectionSetupError",
    "InvalidSourceNameError",
    "RollupError",
    "SourceTableMissingError",
    "StatementError",
    # Naming
    "TableNames",
    "bulk_file_path",
    "quote_identifier",
    "validate_source_name",
]
