"""Ground-truth balance recomputation from a customer's full transaction history"""

from datetime import datetime
from typing import Iterable, List, Tuple

from debt_ledger.domain.debt import handle_overpayment
from debt_ledger.domain.models import BalanceSnapshot, Transaction, TransactionType


def ledger_order(transaction: Transaction) -> Tuple[datetime, int, str]:
    """Sort key: date, then insertion sequence, then id so equal timestamps stay deterministic"""
    return (transaction.date, transaction.sequence, transaction.id)


def live_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Non-deleted transactions in ledger order"""
    return sorted((t for t in transactions if not t.is_deleted), key=ledger_order)


def recompute_customer_balance(transactions: Iterable[Transaction]) -> BalanceSnapshot:
    """
    Rebuild outstanding debt and credit from history alone.

    Fold over live transactions in ledger order:
    - sale / credit: debt grows by remaining_amount (amount when unknown),
      credit drops by whatever credit the sale consumed
    - payment applied to debt: clears debt first, the excess becomes credit
    - payment not applied to debt: accrues to credit
    - refund: reduces debt, never below zero

    Stored balances are never read here; the result only depends on the
    transaction list, so repeated calls return the same snapshot.
    """
    outstanding = 0
    credit = 0

    for tx in live_transactions(transactions):
        if tx.type in (TransactionType.SALE, TransactionType.CREDIT):
            outstanding += tx.amount if tx.remaining_amount is None else tx.remaining_amount
            credit = max(0, credit - tx.credit_applied)
        elif tx.type == TransactionType.PAYMENT and tx.applied_to_debt:
            split = handle_overpayment(tx.amount, max(0, outstanding))
            outstanding -= split.debt_cleared
            credit += split.credit_created
        elif tx.type == TransactionType.PAYMENT:
            credit += tx.amount
        elif tx.type == TransactionType.REFUND:
            outstanding = max(0, outstanding - tx.amount)

    return BalanceSnapshot(outstanding=max(0, outstanding), credit=credit)
