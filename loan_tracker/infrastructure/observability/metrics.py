"""Prometheus metrics for loan volume, payment flow and store contention"""

from prometheus_client import Counter, Histogram

# Accounting metrics
loan_created_counter = Counter(
    "loan_tracker_loans_created",
    "Loans created",
    ["interest_mode"],  # percentage | flat
)

payment_counter = Counter(
    "loan_tracker_payments_recorded",
    "Payments recorded against loans",
)

payment_amount_histogram = Histogram(
    "loan_tracker_payment_amount",
    "Recorded payment amounts",
    buckets=[10, 50, 100, 250, 500, 1000, 5000],
)

loan_settled_counter = Counter(
    "loan_tracker_loans_settled",
    "Payments that brought a loan to settled",
)

# Store metrics
transaction_conflict_counter = Counter(
    "loan_tracker_transaction_conflicts",
    "Atomic transactions re-run after a concurrent write",
)

transaction_failure_counter = Counter(
    "loan_tracker_transaction_failures",
    "Atomic transactions that failed or exhausted their attempts",
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_created(interest_mode: str) -> None:
    loan_created_counter.labels(interest_mode=interest_mode).inc()


def record_payment(amount: float, settled: bool) -> None:
    """Record payment metrics for monitoring cash flow and settlements"""
    payment_counter.inc()
    payment_amount_histogram.observe(amount)
    if settled:
        loan_settled_counter.inc()
