"""Reconciliation auditor: detect and optionally repair balance drift"""

import logging
import time
import uuid
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from debt_ledger.domain.aggregation import live_transactions, recompute_customer_balance
from debt_ledger.domain.integrity import check_integrity
from debt_ledger.domain.models import (
    AuditReport,
    CustomerDebtSummary,
    Discrepancy,
    IntegrityReport,
    ReconciliationResult,
    Transaction,
)
from debt_ledger.domain.exceptions import CustomerNotFoundError
from debt_ledger.domain.reconciliation import audit_customers
from debt_ledger.domain.repository import LedgerRepository
from debt_ledger.infrastructure.observability.logging import log_audit_summary, log_repair
from debt_ledger.infrastructure.observability.metrics import (
    audit_duration_histogram,
    record_audit,
    record_repair,
)


class ReconciliationAuditor:
    """
    Compares stored customer balances against balances recomputed from history.

    audit() never writes. repair() is a separate, explicit call and defaults
    to a dry run that performs the comparison and the writes, then discards
    them before commit.
    """

    def __init__(self, repository: LedgerRepository, run_id: Optional[str] = None):
        self.repository = repository
        self.run_id = run_id or str(uuid.uuid4())

    def audit(self) -> AuditReport:
        """Read every customer and live transaction, report drift and orphans"""
        start_time = time.time()

        with audit_duration_histogram.time():
            customers = self.repository.list_customers()
            by_customer: Dict[str, List[Transaction]] = defaultdict(list)
            for tx in self.repository.list_transactions():
                by_customer[tx.customer_id].append(tx)

            report = audit_customers(customers, by_customer)

        duration_ms = (time.time() - start_time) * 1000
        record_audit(report)
        log_audit_summary(self.run_id, report, duration_ms)
        return report

    def repair(self, discrepancies: Sequence[Discrepancy], dry_run: bool = True) -> int:
        """
        Overwrite flagged customers with their computed balances in one batch.

        Returns the number of customers updated (or that would have been, on
        a dry run). Orphaned transactions are not touched.
        """
        if not discrepancies:
            log_repair(self.run_id, 0, dry_run)
            return 0

        applied = self.repository.apply_balance_corrections(list(discrepancies), dry_run=dry_run)
        record_repair(applied, dry_run)
        log_repair(self.run_id, applied, dry_run)
        return applied

    def run(self, repair: bool = False, dry_run: bool = True) -> ReconciliationResult:
        """Audit, then repair the discrepancies found when asked to"""
        report = self.audit()
        repaired = self.repair(report.discrepancies, dry_run=dry_run) if repair else 0
        return ReconciliationResult(report=report, repaired_count=repaired, dry_run=dry_run or not repair)

    def check_transactions(self) -> IntegrityReport:
        """Check every live transaction against the creation-time split, method and status rules"""
        report = check_integrity(self.repository.list_transactions())
        logging.log(
            logging.INFO if report.is_valid else logging.WARNING,
            "Transaction integrity check completed",
            extra={"run_id": self.run_id, "step": "integrity_complete", **report.summary},
        )
        return report

    def customer_summary(self, customer_id: str) -> CustomerDebtSummary:
        """Computed vs stored debt for one customer"""
        customer = next((c for c in self.repository.list_customers() if c.id == customer_id), None)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

        history = live_transactions(self.repository.list_transactions(customer_id))
        computed = recompute_customer_balance(history)

        logging.debug(
            "Customer debt summary computed",
            extra={"run_id": self.run_id, "customer_id": customer_id, "transaction_count": len(history)},
        )
        return CustomerDebtSummary(
            customer_id=customer_id,
            calculated_debt=computed.outstanding,
            stored_debt=customer.outstanding_balance,
            discrepancy=abs(computed.outstanding - customer.outstanding_balance),
            transaction_count=len(history),
            last_transaction_date=history[-1].date if history else None,
        )


def repair_customers(
    repository: LedgerRepository,
    discrepancies: Sequence[Discrepancy],
    dry_run: bool = True,
) -> int:
    """Functional entry point for ReconciliationAuditor.repair"""
    return ReconciliationAuditor(repository).repair(discrepancies, dry_run=dry_run)
