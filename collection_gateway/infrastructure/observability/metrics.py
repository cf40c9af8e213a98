"""Prometheus metrics for commit outcomes, collected amounts, and upstream health"""

from prometheus_client import Counter, Histogram

# Commit metrics
commit_counter = Counter(
    "collection_commit_total",
    "Collection commits attempted",
    ["kind", "outcome"],  # create | update ; ok | rejected | failed
)

collected_amount_counter = Counter(
    "collection_amount_recorded_total",
    "Amount recorded by committed collections",
    ["channel"],  # cash | bank
)

commit_latency_histogram = Histogram(
    "ledger_commit_latency_seconds",
    "Ledger batch create/update response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0],
)

# Roster metrics
roster_fetch_failures_counter = Counter(
    "roster_fetch_failures_total",
    "Failed roster, day-record or account lookups",
)

stale_roster_counter = Counter(
    "roster_stale_responses_total",
    "Roster responses discarded because the session context changed",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_commit(kind: str, outcome: str, cash_recorded=None, bank_recorded=None) -> None:
    """Record commit outcome and, on success, the amounts recorded per channel"""
    commit_counter.labels(kind=kind, outcome=outcome).inc()

    if outcome == "ok":
        if cash_recorded is not None and cash_recorded > 0:
            collected_amount_counter.labels(channel="cash").inc(float(cash_recorded))
        if bank_recorded is not None and bank_recorded > 0:
            collected_amount_counter.labels(channel="bank").inc(float(bank_recorded))
