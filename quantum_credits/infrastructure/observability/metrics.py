"""Prometheus metrics for generation outcomes, withdrawals, payouts and ledger health"""

from decimal import Decimal

from prometheus_client import Counter, Gauge, Histogram

# Generation metrics
generation_counter = Counter(
    "quantum_credits_generation_total",
    "Credit generation attempts",
    ["outcome"],  # awarded | empty
)

random_fallback_counter = Counter(
    "quantum_credits_random_fallback_total",
    "Samples drawn from the local fallback instead of the quantum source",
)

# Withdrawal metrics
withdrawal_counter = Counter(
    "quantum_credits_withdrawal_total",
    "Withdrawal requests by outcome",
    ["outcome"],  # completed | invalid | insufficient | payout_failed | refund_pending
)

payout_latency_histogram = Histogram(
    "quantum_credits_payout_latency_seconds",
    "Payout gateway response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

payout_failure_counter = Counter(
    "quantum_credits_payout_failures_total",
    "Failed payout attempts",
)

# Ledger health
ledger_repair_counter = Counter(
    "quantum_credits_ledger_repairs_total",
    "Balance rewritten to match the transaction log",
)

commit_conflict_counter = Counter(
    "quantum_credits_commit_conflicts_total",
    "Ledger commits retried after a concurrent write",
)

balance_gauge = Gauge(
    "quantum_credits_balance",
    "Current credit balance",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_generation(credits_awarded: int, used_fallback: bool) -> None:
    """Record one generation attempt"""
    generation_counter.labels(outcome="awarded" if credits_awarded > 0 else "empty").inc()
    if used_fallback:
        random_fallback_counter.inc()


def record_withdrawal(outcome: str) -> None:
    withdrawal_counter.labels(outcome=outcome).inc()


def record_balance(balance: Decimal) -> None:
    balance_gauge.set(float(balance))
