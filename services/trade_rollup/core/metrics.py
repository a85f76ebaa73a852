"""
Prometheus Metrics for Trade Rollup

Exposes operational metrics for monitoring and alerting.

Metrics:
- Staging counters (timestamps staged, bulk rounds)
- Aggregation counters (batches committed, rows aggregated)
- Pipeline run outcomes
- Phase latency histograms
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()


# =============================================================================
# Staging Metrics
# =============================================================================

# Distinct timestamps loaded into the index
TIMESTAMPS_STAGED_TOTAL = Counter(
    "trade_rollup_timestamps_staged_total",
    "Total distinct timestamps loaded into the timestamp index",
    ["source"],
    registry=REGISTRY,
)

# Bulk export/load round-trips
STAGE_ROUNDS_TOTAL = Counter(
    "trade_rollup_stage_rounds_total",
    "Total bulk export/load rounds",
    ["source"],
    registry=REGISTRY,
)


# =============================================================================
# Aggregation Metrics
# =============================================================================

# Committed aggregation transactions
AGGREGATE_BATCHES_TOTAL = Counter(
    "trade_rollup_aggregate_batches_total",
    "Total committed aggregation batches",
    ["source"],
    registry=REGISTRY,
)

# Aggregated rows written to the result table
ROWS_AGGREGATED_TOTAL = Counter(
    "trade_rollup_rows_aggregated_total",
    "Total aggregated rows written",
    ["source"],
    registry=REGISTRY,
)


# =============================================================================
# Pipeline Metrics
# =============================================================================

PIPELINE_RUNS_TOTAL = Counter(
    "trade_rollup_pipeline_runs_total",
    "Total pipeline runs by outcome",
    ["source", "outcome"],  # outcome: published, skipped, failed
    registry=REGISTRY,
)

PHASE_DURATION = Histogram(
    "trade_rollup_phase_duration_seconds",
    "Pipeline phase duration in seconds",
    ["source", "phase"],
    buckets=[0.1, 1, 10, 60, 300, 900, 1800, 3600, 7200],
    registry=REGISTRY,
)


# =============================================================================
# Service Info Metrics
# =============================================================================

SERVICE_INFO = Gauge(
    "trade_rollup_service_info",
    "Service information",
    ["version", "environment"],
    registry=REGISTRY,
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_stage_round(source: str, timestamps: int) -> None:
    """Record one bulk export/load round."""
    STAGE_ROUNDS_TOTAL.labels(source=source).inc()
    if timestamps:
        TIMESTAMPS_STAGED_TOTAL.labels(source=source).inc(timestamps)


def record_aggregate_batch(source: str, rows: int) -> None:
    """Record one committed aggregation batch."""
    AGGREGATE_BATCHES_TOTAL.labels(source=source).inc()
    if rows:
        ROWS_AGGREGATED_TOTAL.labels(source=source).inc(rows)


def record_pipeline_run(source: str, outcome: str) -> None:
    """Record the outcome of one pipeline run."""
    PIPELINE_RUNS_TOTAL.labels(source=source, outcome=outcome).inc()


def observe_phase(source: str, phase: str, duration_seconds: float) -> None:
    """Record how long a pipeline phase took."""
    PHASE_DURATION.labels(source=source, phase=phase).observe(duration_seconds)


def set_service_info(version: str, environment: str) -> None:
    """Set service info gauge."""
    SERVICE_INFO.labels(version=version, environment=environment).set(1)
