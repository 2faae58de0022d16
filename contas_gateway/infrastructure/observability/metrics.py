"""Prometheus metrics for monitoring bill lifecycle, ledger activity and storage retries"""

from prometheus_client import Counter, Histogram

# Bill metrics
bills_created_counter = Counter(
    "contas_bills_created_total",
    "Bills created (one per installment)",
    ["mode"],  # single | split | same-amount-remaining | manual
)

bill_payment_counter = Counter(
    "contas_bill_payments_total",
    "Bill payment attempts",
    ["outcome"],  # paid | rejected
)

bill_cancellation_counter = Counter(
    "contas_bill_cancellations_total",
    "Bills moved to cancelled",
    ["source"],  # cancel | delete | cancel_remaining
)

# Ledger metrics
ledger_post_counter = Counter(
    "contas_ledger_entries_total",
    "Ledger entries posted",
    ["kind"],  # inflow | outflow | opening_balance
)

ledger_reversal_counter = Counter(
    "contas_ledger_reversals_total",
    "Ledger entries reversed",
)

# Storage
transaction_retry_counter = Counter(
    "contas_transaction_retries_total",
    "Storage transactions retried after a conflict",
    ["operation"],
)

report_duration_histogram = Histogram(
    "contas_report_duration_seconds",
    "Dashboard aggregation time",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_bills_created(mode: str, count: int) -> None:
    """Count created bills; standalone bills are labelled 'single'"""
    bills_created_counter.labels(mode=mode if count > 1 else "single").inc(count)


def record_payment(paid: bool) -> None:
    bill_payment_counter.labels(outcome="paid" if paid else "rejected").inc()
