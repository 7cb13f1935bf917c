"""Prometheus metrics for reconciliation drift and repairs"""

from prometheus_client import Counter, Histogram, Gauge

from debt_ledger.domain.models import AuditReport

# Audit metrics
discrepancy_counter = Counter(
    "ledger_reconciliation_discrepancies_total",
    "Customers whose stored balances disagreed with their history",
    ["field"],  # outstanding | credit
)

orphaned_transactions_gauge = Gauge(
    "ledger_orphaned_transactions",
    "Live transactions referencing a missing customer, as of the last audit",
)

audit_duration_histogram = Histogram(
    "ledger_reconciliation_duration_seconds",
    "Time spent on one reconciliation audit",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Repair metrics
repair_counter = Counter(
    "ledger_balance_repairs_total",
    "Customer balances rewritten by repair runs",
    ["mode"],  # dry_run | committed
)


def record_audit(report: AuditReport) -> None:
    """Record drift found by an audit, split by which balance drifted"""
    for d in report.discrepancies:
        if d.outstanding_drift:
            discrepancy_counter.labels(field="outstanding").inc()
        if d.credit_drift:
            discrepancy_counter.labels(field="credit").inc()

    orphaned_transactions_gauge.set(len(report.orphaned_transactions))


def record_repair(repaired_count: int, dry_run: bool) -> None:
    repair_counter.labels(mode="dry_run" if dry_run else "committed").inc(repaired_count)
