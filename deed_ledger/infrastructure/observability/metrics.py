"""Prometheus metrics for imports, audit activity, schedules and data quality"""

from collections import Counter as TallyCounter
from typing import Iterable

from prometheus_client import Counter, Histogram, Gauge

# Import metrics
contracts_imported_counter = Counter(
    "deed_ledger_contracts_imported_total",
    "Contracts admitted through CSV import",
)

import_row_errors_counter = Counter(
    "deed_ledger_import_row_errors_total",
    "CSV import rows rejected",
)

# Audit metrics
audit_entries_counter = Counter(
    "deed_ledger_audit_entries_total",
    "Audit log entries written",
    ["entity_type"],  # CONTRACT | PAYMENT
)

# Schedule metrics
installments_generated_counter = Counter(
    "deed_ledger_installments_generated_total",
    "Installment rows written by schedule regeneration",
)

installments_marked_overdue_counter = Counter(
    "deed_ledger_installments_marked_overdue_total",
    "Installments transitioned from PENDING to OVERDUE",
)

# Data quality
data_quality_exceptions_gauge = Gauge(
    "deed_ledger_data_quality_exceptions",
    "Open data-quality exceptions from the latest validation run",
    ["type"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_data_quality(exception_types: Iterable[str]) -> None:
    """Publish per-type exception counts, zeroing types that cleared since the last run"""
    tally = TallyCounter(exception_types)
    for metric in data_quality_exceptions_gauge.collect():
        for sample in metric.samples:
            label = sample.labels.get("type")
            if label and label not in tally:
                data_quality_exceptions_gauge.labels(type=label).set(0)
    for exception_type, count in tally.items():
        data_quality_exceptions_gauge.labels(type=exception_type).set(count)
