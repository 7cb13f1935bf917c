"""Per-transaction consistency checks against the creation-time rules"""

from collections import Counter
from typing import Iterable, List

from debt_ledger.domain.models import (
    IntegrityReport,
    PaymentMethod,
    Transaction,
    TransactionIssue,
    TransactionType,
)
from debt_ledger.domain.status import calculate_status
from debt_ledger.domain.validation import is_valid_payment_method_for_type, valid_payment_methods_for_type

# paid + remaining may drift from amount by one kobo of rounding
SPLIT_TOLERANCE = 1

BLOCKING_SEVERITIES = frozenset({"high", "critical"})


def expected_split(transaction: Transaction) -> tuple[int, int]:
    """
    (paid, remaining) a transaction should carry given its type and method.

    Mixed sales keep whatever was paid at the till; only remaining must follow.
    Credit sales count the customer credit they consumed as paid.
    """
    amount = transaction.amount
    if transaction.type == TransactionType.CREDIT:
        return 0, amount
    if transaction.type == TransactionType.SALE:
        if transaction.payment_method == PaymentMethod.CREDIT:
            return transaction.credit_applied, amount - transaction.credit_applied
        if transaction.payment_method == PaymentMethod.MIXED:
            return transaction.paid_amount, max(0, amount - transaction.paid_amount)
    return amount, 0


def check_transaction(transaction: Transaction) -> List[TransactionIssue]:
    """
    All rule violations on one stored transaction.

    Negative stored amounts are reported as critical and stop the split and
    status checks, which are undefined for them.
    """
    issues: List[TransactionIssue] = []
    actual_remaining = transaction.remaining_amount or 0

    def issue(issue_type: str, description: str, expected, actual, severity: str) -> TransactionIssue:
        return TransactionIssue(
            transaction_id=transaction.id,
            customer_id=transaction.customer_id,
            issue_type=issue_type,
            description=description,
            expected=expected,
            actual=actual,
            severity=severity,
        )

    label = f"{transaction.type.value} transaction with {transaction.payment_method.value} payment"
    stored_amounts = (
        ("amount", transaction.amount),
        ("paid_amount", transaction.paid_amount),
        ("remaining_amount", actual_remaining),
        ("credit_applied", transaction.credit_applied),
    )
    for field_name, value in stored_amounts:
        if value < 0:
            issues.append(issue("amount_inconsistency", f"Negative {field_name} on {label}", ">= 0", value, "critical"))

    if not is_valid_payment_method_for_type(transaction.type, transaction.payment_method):
        issues.append(
            issue(
                "payment_method",
                f"Invalid payment method {transaction.payment_method.value} for transaction type {transaction.type.value}",
                [m.value for m in valid_payment_methods_for_type(transaction.type)],
                transaction.payment_method.value,
                "medium",
            )
        )

    if any(i.severity == "critical" for i in issues):
        return issues

    paid, remaining = expected_split(transaction)
    if abs(transaction.paid_amount - paid) > SPLIT_TOLERANCE:
        issues.append(issue("amount_inconsistency", f"Paid amount mismatch for {label}", paid, transaction.paid_amount, "high"))
    if abs(actual_remaining - remaining) > SPLIT_TOLERANCE:
        issues.append(issue("amount_inconsistency", f"Remaining amount mismatch for {label}", remaining, actual_remaining, "high"))

    expected_status = calculate_status(
        transaction.type, transaction.amount, transaction.paid_amount, actual_remaining
    ).status
    if transaction.status != expected_status:
        issues.append(issue("status_mismatch", "Transaction status mismatch", expected_status.value, transaction.status.value, "medium"))

    return issues


def check_integrity(transactions: Iterable[Transaction]) -> IntegrityReport:
    """Run check_transaction over every live transaction and summarize"""
    live = [t for t in transactions if not t.is_deleted]
    issues = [i for tx in live for i in check_transaction(tx)]
    by_type = Counter(i.issue_type for i in issues)

    return IntegrityReport(
        is_valid=not any(i.severity in BLOCKING_SEVERITIES for i in issues),
        issues=issues,
        summary={
            "total_transactions": len(live),
            "inconsistent_transactions": len({i.transaction_id for i in issues}),
            "amount_inconsistencies": by_type["amount_inconsistency"],
            "payment_method_mismatches": by_type["payment_method"],
            "status_calculation_errors": by_type["status_mismatch"],
        },
    )
