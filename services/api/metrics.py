"""Prometheus metrics for API service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Import runs and per-record import outcomes

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

from services.importer.report import ImportReport

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Import metrics
import_runs_total = Counter(
    "import_runs_total",
    "Total import runs",
    ["source", "status"],  # completed, rejected, unavailable, failed
)

import_duration_seconds = Histogram(
    "import_duration_seconds",
    "Import run duration in seconds",
    ["source"],
    buckets=(0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0),
)

import_records_total = Counter(
    "import_records_total",
    "Records processed by imports",
    ["entity", "outcome"],  # entity: client, invoice
)


def record_report(report: ImportReport) -> None:
    """Add the counters of a finished import run to the record metrics."""
    import_records_total.labels(entity="client", outcome="created").inc(report.clients_created)
    import_records_total.labels(entity="client", outcome="existing").inc(report.clients_skipped)
    import_records_total.labels(entity="invoice", outcome="created").inc(report.invoices_created)
    import_records_total.labels(entity="invoice", outcome="failed").inc(report.invoices_failed)
    import_records_total.labels(entity="invoice", outcome="missing_field").inc(
        report.skipped.missing_field
    )
    import_records_total.labels(entity="invoice", outcome="unresolved_client").inc(
        report.skipped.unresolved_client
    )
    import_records_total.labels(entity="invoice", outcome="duplicate").inc(
        report.skipped.duplicate
    )


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
