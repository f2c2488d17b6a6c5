"""
Prometheus metrics collection for product-migration

Counters and histograms for rows read from the key-value store,
records written to the relational backend and objects copied between
blob stores. A migration run is one process, so metrics are collected
on a private registry and can be dumped at the end of the run.
"""
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


# Private registry: one migration run per process
REGISTRY = CollectorRegistry()


# =======================
# SOURCE METRICS
# =======================

rows_fetched_total = Counter(
    name="migration_rows_fetched_total",
    documentation="Total number of rows read from the key-value store",
    labelnames=["table", "mode"],  # mode: scan, query
    registry=REGISTRY,
)

rows_rejected_total = Counter(
    name="migration_rows_rejected_total",
    documentation="Rows dropped because they failed record validation",
    labelnames=["table"],
    registry=REGISTRY,
)

source_read_failures_total = Counter(
    name="migration_source_read_failures_total",
    documentation="Scans or queries that failed against the key-value store",
    labelnames=["table", "mode"],
    registry=REGISTRY,
)

# =======================
# SINK METRICS
# =======================

records_written_total = Counter(
    name="migration_records_written_total",
    documentation="Total number of records written to the relational backend",
    labelnames=["table", "operation"],  # operation: insert, upsert
    registry=REGISTRY,
)

sink_failures_total = Counter(
    name="migration_sink_failures_total",
    documentation="Batch writes rejected by the relational backend",
    labelnames=["table", "operation"],
    registry=REGISTRY,
)

# =======================
# BLOB METRICS
# =======================

blobs_migrated_total = Counter(
    name="migration_blobs_migrated_total",
    documentation="Objects copied from the source bucket to the destination store",
    labelnames=["content_type"],
    registry=REGISTRY,
)

blob_bytes_total = Counter(
    name="migration_blob_bytes_total",
    documentation="Bytes uploaded to the destination store",
    registry=REGISTRY,
)

# =======================
# TIMING
# =======================

operation_duration_seconds = Histogram(
    name="migration_operation_duration_seconds",
    documentation="Duration of migration stages in seconds",
    labelnames=["operation"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
    registry=REGISTRY,
)


# =======================
# HELPERS
# =======================

def generate_metrics() -> bytes:
    """Render the migration registry in the Prometheus text format."""
    return generate_latest(REGISTRY)


@contextmanager
def track_duration(histogram: Histogram, **labels) -> Iterator[None]:
    """
    Observe the wall time of a block in ``histogram``

    Usage:
        with track_duration(operation_duration_seconds, operation="assemble"):
            ...

    The time is recorded whether or not the block raises.
    """
    with histogram.labels(**labels).time():
        yield


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """Add ``value`` to a counter, selecting the labelled child when labels are given."""
    target = counter.labels(**labels) if labels else counter
    target.inc(value)


def get_sample(name: str, **labels) -> float:
    """Current value of a sample in the migration registry (0.0 if unset)."""
    value = REGISTRY.get_sample_value(name, labels or None)
    return value or 0.0
