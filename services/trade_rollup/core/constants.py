"""
Trade Rollup Constants

Table naming prefixes, batch sizes and defaults shared by every phase.

IMPORTANT: The table prefixes are a compatibility contract with tables left
behind by earlier runs. Changing them orphans in-flight work.
"""

# =============================================================================
# Table Naming (FROZEN)
# =============================================================================

# Raw executions: trades_<source>
SOURCE_TABLE_PREFIX: str = "trades_"

# Published aggregate: ref_trades_<source>
TARGET_TABLE_PREFIX: str = "ref_"

# Timestamp index (work queue): step1__trades_<source>
INDEX_TABLE_PREFIX: str = "step1__"

# Aggregation result staging: step2__trades_<source>
RESULT_TABLE_PREFIX: str = "step2__"

# Working copy of the index while it is being built: tmp__step1__trades_<source>
WORKING_TABLE_PREFIX: str = "tmp__"

# PostgreSQL truncates identifiers beyond NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH: int = 63


# =============================================================================
# Batching
# =============================================================================

# Distinct timestamps exported/loaded per bulk round-trip
STAGE_BATCH_SIZE: int = 100_000

# Index entries consumed per aggregation transaction
AGGREGATE_BATCH_SIZE: int = 100_000


# =============================================================================
# Staging
# =============================================================================

# Bulk transfer file name: table_<source>_<ns timestamp>.txt
BULK_FILE_TEMPLATE: str = "table_{source}_{stamp}.txt"


# =============================================================================
# Data Sources
# =============================================================================

# Exchanges fed by the downloader
DEFAULT_SOURCES: tuple[str, ...] = ("bffx", "liquid", "mex")
