"""Prometheus metrics for loan lifecycle, ledger writes and analytics caching"""

from prometheus_client import Counter, Histogram

# Loan metrics
loans_created_counter = Counter(
    "finance_loans_created_total",
    "Loans created",
    ["role"],  # lent | borrowed
)

settlement_counter = Counter(
    "finance_settlements_total",
    "Settlement requests by outcome",
    ["outcome"],  # settled | noop | rejected
)

cascade_delete_counter = Counter(
    "finance_cascade_deletes_total",
    "Loans removed together with their ledger entries",
    ["trigger"],  # loan | transaction
)

# Ledger metrics
ledger_entries_counter = Counter(
    "finance_ledger_entries_total",
    "Ledger entries written",
    ["origin"],  # manual | loan_principal | loan_interest
)

# Analytics metrics
summary_cache_counter = Counter(
    "finance_summary_cache_total",
    "Summary cache lookups",
    ["result"],  # hit | miss
)

# Rates API metrics
rates_fetch_failures_counter = Counter(
    "rates_fetch_failures_total",
    "Failed currency rates API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_entries(entries) -> None:
    """Count persisted ledger entries by origin"""
    for entry in entries:
        ledger_entries_counter.labels(origin=entry.origin.kind.value).inc()
