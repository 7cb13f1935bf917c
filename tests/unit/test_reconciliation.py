"""Unit tests for the reconciliation audit and repair orchestration"""

import pytest
from unittest.mock import Mock
from debt_ledger.domain.exceptions import CustomerNotFoundError
from debt_ledger.domain.models import Customer, Discrepancy
from debt_ledger.domain.reconciliation import audit_customers, find_discrepancy
from debt_ledger.domain.repository import LedgerRepository
from debt_ledger.services.reconciliation import ReconciliationAuditor, repair_customers


@pytest.fixture
def ledger(make_transaction):
    """Two customers: one consistent, one whose stored debt drifted, plus an orphan"""
    consistent = Customer(id="cust_ok", name="Ada", outstanding_balance=2000, credit_balance=0)
    drifted = Customer(id="cust_bad", name="Bayo", outstanding_balance=5000, credit_balance=0)
    idle = Customer(id="cust_idle", name="Chi", outstanding_balance=300, credit_balance=0)

    transactions = {
        "cust_ok": [
            make_transaction("sale", 3000, customer_id="cust_ok", payment_method="credit", paid_amount=0, remaining_amount=3000),
            make_transaction("payment", 1000, customer_id="cust_ok", applied_to_debt=True),
        ],
        "cust_bad": [
            make_transaction("credit", 4000, customer_id="cust_bad", payment_method="credit", paid_amount=0, remaining_amount=4000),
            make_transaction("payment", 600, customer_id="cust_bad", applied_to_debt=False),
        ],
        "cust_gone": [
            make_transaction("sale", 800, customer_id="cust_gone", payment_method="credit", paid_amount=0, remaining_amount=800),
        ],
    }
    return [consistent, drifted, idle], transactions


def test_audit_reports_drift_only_for_mismatches(ledger):
    customers, transactions = ledger
    report = audit_customers(customers, transactions)

    assert report.discrepancies == [
        Discrepancy(
            customer_id="cust_bad",
            stored_outstanding=5000,
            computed_outstanding=4000,
            stored_credit=0,
            computed_credit=600,
            transaction_count=2,
        )
    ]
    assert report.discrepancies[0].outstanding_drift == 1000
    assert report.discrepancies[0].credit_drift == -600


def test_audit_skips_customers_without_history(ledger):
    """Test a customer with no live transactions is never flagged, even with a stored balance"""
    customers, transactions = ledger
    report = audit_customers(customers, transactions)

    assert report.customers_checked == 2
    assert report.customers_skipped == 1
    assert all(d.customer_id != "cust_idle" for d in report.discrepancies)


def test_audit_reports_orphans(ledger):
    customers, transactions = ledger
    report = audit_customers(customers, transactions)

    assert [t.customer_id for t in report.orphaned_transactions] == ["cust_gone"]
    assert report.is_consistent is False


def test_audit_ignores_deleted_history(make_transaction):
    customer = Customer(id="c1", outstanding_balance=700)
    history = [make_transaction("credit", 900, customer_id="c1", payment_method="credit", remaining_amount=900, is_deleted=True)]

    report = audit_customers([customer], {"c1": history})
    assert report.customers_skipped == 1
    assert report.discrepancies == []


def test_find_discrepancy_exact_match(make_transaction):
    customer = Customer(id="c1", outstanding_balance=1200, credit_balance=0)
    history = [make_transaction("sale", 2000, customer_id="c1", payment_method="mixed", paid_amount=800, remaining_amount=1200)]
    assert find_discrepancy(customer, history) is None

    customer.outstanding_balance = 1201
    assert find_discrepancy(customer, history).computed_outstanding == 1200


def _repository(customers, transactions):
    repository = Mock(spec=LedgerRepository)
    repository.list_customers.return_value = customers
    repository.list_transactions.side_effect = lambda customer_id=None: [
        t for history in transactions.values() for t in history
        if customer_id is None or t.customer_id == customer_id
    ]
    repository.apply_balance_corrections.side_effect = lambda discrepancies, dry_run=True: len(discrepancies)
    return repository


def test_auditor_audit_is_read_only(ledger):
    customers, transactions = ledger
    repository = _repository(customers, transactions)

    report = ReconciliationAuditor(repository).audit()

    assert len(report.discrepancies) == 1
    repository.apply_balance_corrections.assert_not_called()


def test_auditor_run_defaults_to_no_repair(ledger):
    repository = _repository(*ledger)
    result = ReconciliationAuditor(repository).run()

    assert result.repaired_count == 0
    assert result.dry_run is True
    repository.apply_balance_corrections.assert_not_called()


def test_auditor_repair_is_dry_run_by_default(ledger):
    repository = _repository(*ledger)
    auditor = ReconciliationAuditor(repository)
    report = auditor.audit()

    applied = auditor.repair(report.discrepancies)

    assert applied == 1
    repository.apply_balance_corrections.assert_called_once_with(report.discrepancies, dry_run=True)


def test_auditor_run_commits_when_asked(ledger):
    repository = _repository(*ledger)
    result = ReconciliationAuditor(repository).run(repair=True, dry_run=False)

    assert result.repaired_count == 1
    assert result.dry_run is False
    (discrepancies,), kwargs = repository.apply_balance_corrections.call_args
    assert [d.customer_id for d in discrepancies] == ["cust_bad"]
    assert kwargs == {"dry_run": False}


def test_repair_with_nothing_to_fix_skips_store():
    repository = Mock(spec=LedgerRepository)
    assert repair_customers(repository, [], dry_run=False) == 0
    repository.apply_balance_corrections.assert_not_called()


def test_customer_summary(ledger):
    repository = _repository(*ledger)
    summary = ReconciliationAuditor(repository).customer_summary("cust_bad")

    assert summary.calculated_debt == 4000
    assert summary.stored_debt == 5000
    assert summary.discrepancy == 1000
    assert summary.transaction_count == 2
    assert summary.last_transaction_date is not None


def test_customer_summary_unknown_customer(ledger):
    repository = _repository(*ledger)
    with pytest.raises(CustomerNotFoundError):
        ReconciliationAuditor(repository).customer_summary("nobody")


def test_check_transactions_flags_stored_rule_violations(make_transaction):
    repository = Mock(spec=LedgerRepository)
    repository.list_transactions.return_value = [
        make_transaction("sale", 3000, payment_method="credit", paid_amount=0, remaining_amount=3000, status="pending"),
        make_transaction("credit", 700, payment_method="cash", paid_amount=0, remaining_amount=700, status="pending"),
    ]

    report = ReconciliationAuditor(repository).check_transactions()

    assert report.is_valid is True  # a wrong method is medium severity
    assert [i.issue_type for i in report.issues] == ["payment_method"]
    repository.apply_balance_corrections.assert_not_called()


def test_check_transactions_reports_negative_amounts(make_transaction):
    repository = Mock(spec=LedgerRepository)
    repository.list_transactions.return_value = [
        make_transaction("sale", 2000, payment_method="mixed", paid_amount=-5, remaining_amount=2005, status="pending"),
    ]

    report = ReconciliationAuditor(repository).check_transactions()

    assert report.is_valid is False
    assert [i.severity for i in report.issues] == ["critical"]
