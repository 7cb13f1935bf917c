"""Stored-vs-recomputed balance comparison across a customer set"""

from typing import Iterable, List, Mapping

from debt_ledger.domain.aggregation import live_transactions, recompute_customer_balance
from debt_ledger.domain.models import AuditReport, Customer, Discrepancy, Transaction


def find_discrepancy(customer: Customer, transactions: Iterable[Transaction]) -> Discrepancy | None:
    """Compare one customer's stored balances with history; None when they agree or there is no history"""
    live = live_transactions(transactions)
    if not live:
        return None

    computed = recompute_customer_balance(live)
    if (
        customer.outstanding_balance == computed.outstanding
        and customer.credit_balance == computed.credit
    ):
        return None

    return Discrepancy(
        customer_id=customer.id,
        stored_outstanding=customer.outstanding_balance,
        computed_outstanding=computed.outstanding,
        stored_credit=customer.credit_balance,
        computed_credit=computed.credit,
        transaction_count=len(live),
    )


def audit_customers(
    customers: Iterable[Customer],
    transactions_by_customer: Mapping[str, Iterable[Transaction]],
) -> AuditReport:
    """
    Read-only reconciliation pass.

    - customers without live transactions are skipped
    - every balance mismatch (exact integer comparison) becomes a Discrepancy
    - transactions whose customer_id matches no customer are reported as
      orphans; they belong to no ledger and are never repaired
    """
    report = AuditReport()
    known_ids = set()

    for customer in customers:
        known_ids.add(customer.id)
        history = list(transactions_by_customer.get(customer.id, ()))
        if not any(not t.is_deleted for t in history):
            report.customers_skipped += 1
            continue

        report.customers_checked += 1
        discrepancy = find_discrepancy(customer, history)
        if discrepancy is not None:
            report.discrepancies.append(discrepancy)

    orphans: List[Transaction] = []
    for customer_id, history in transactions_by_customer.items():
        if customer_id not in known_ids:
            orphans.extend(live_transactions(history))
    report.orphaned_transactions = orphans

    return report
