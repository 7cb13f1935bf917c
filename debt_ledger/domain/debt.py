"""Debt impact, overpayment allocation and incremental balance maintenance"""

from dataclasses import replace
from typing import Optional, Union

from debt_ledger.domain.exceptions import InvalidAmountError, InvalidTransactionDataError
from debt_ledger.domain.models import (
    BalanceImpact,
    BalanceSnapshot,
    CreditApplication,
    DebtImpact,
    OverpaymentSplit,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from debt_ledger.domain.status import calculate_status

# Sale methods that leave something owing, which stored credit can cover
CREDIT_SETTLED_METHODS = frozenset({PaymentMethod.CREDIT, PaymentMethod.MIXED})


def _signed_debt_change(
    tx_type: TransactionType,
    method: PaymentMethod,
    amount: int,
    applied_to_debt: bool,
    remaining_amount: Optional[int],
) -> int:
    if tx_type == TransactionType.SALE:
        if method == PaymentMethod.CREDIT:
            return amount
        if method == PaymentMethod.MIXED:
            if remaining_amount is None:
                raise InvalidTransactionDataError("remaining_amount is required for mixed sales")
            return remaining_amount
        return 0
    if tx_type == TransactionType.CREDIT:
        return amount
    if tx_type == TransactionType.PAYMENT:
        return -amount if applied_to_debt else 0
    return -amount  # refund


def calculate_debt_impact(
    type_: Union[str, TransactionType],
    payment_method: Union[str, PaymentMethod, None],
    amount: int,
    applied_to_debt: Optional[bool] = None,
    remaining_amount: Optional[int] = None,
) -> DebtImpact:
    """
    Effect of one transaction on outstanding debt.

    change is a magnitude; is_increase / is_decrease give the direction.
    Cash, transfer and POS sales leave debt untouched, and so do payments
    that were not applied to debt (those accrue to credit instead).
    """
    tx_type = TransactionType.parse(type_)
    method = PaymentMethod.parse(payment_method) if payment_method else PaymentMethod.CASH

    if amount < 0:
        raise InvalidAmountError(f"Transaction amount cannot be negative, got {amount}")
    if amount == 0:
        return DebtImpact(change=0, is_increase=False, is_decrease=False)

    change = _signed_debt_change(tx_type, method, amount, bool(applied_to_debt), remaining_amount)
    return DebtImpact(change=abs(change), is_increase=change > 0, is_decrease=change < 0)


def calculate_customer_balance_impact(
    type_: Union[str, TransactionType],
    payment_method: Union[str, PaymentMethod, None],
    amount: int,
    remaining_amount: Optional[int],
    applied_to_debt: Optional[bool] = None,
) -> BalanceImpact:
    """Signed (debt_change, credit_change) to apply to the two customer balance fields"""
    tx_type = TransactionType.parse(type_)
    method = PaymentMethod.parse(payment_method) if payment_method else PaymentMethod.CASH

    if amount < 0:
        raise InvalidAmountError(f"Transaction amount cannot be negative, got {amount}")

    if tx_type == TransactionType.PAYMENT and not applied_to_debt:
        return BalanceImpact(debt_change=0, credit_change=amount)

    if tx_type == TransactionType.SALE and method == PaymentMethod.CREDIT:
        debt = amount if remaining_amount is None else remaining_amount
        return BalanceImpact(debt_change=debt, credit_change=0)

    debt = _signed_debt_change(tx_type, method, amount, bool(applied_to_debt), remaining_amount)
    return BalanceImpact(debt_change=debt, credit_change=0)


def handle_overpayment(payment_amount: int, existing_debt: int) -> OverpaymentSplit:
    """
    Split a payment into the part that clears debt and the part that becomes credit.

    Example:
        debt 1000, payment 1500 → cleared 1000, credit 500
        debt 0, payment 700     → cleared 0, credit 700
    """
    if payment_amount < 0 or existing_debt < 0:
        raise InvalidAmountError(
            f"Payment and debt must be non-negative, got payment={payment_amount} debt={existing_debt}"
        )
    debt_cleared = min(existing_debt, payment_amount)
    return OverpaymentSplit(debt_cleared=debt_cleared, credit_created=payment_amount - debt_cleared)


def apply_credit_to_sale(credit_balance: int, sale_remaining: int) -> CreditApplication:
    """
    Use a customer's credit against what a sale leaves owing.

    Example:
        credit 500, remaining 2000  → used 500, remaining 1500
        credit 3000, remaining 2000 → used 2000, remaining 0
    """
    if credit_balance < 0 or sale_remaining < 0:
        raise InvalidAmountError(
            f"Credit and remaining amount must be non-negative, got credit={credit_balance} remaining={sale_remaining}"
        )
    credit_used = min(credit_balance, sale_remaining)
    return CreditApplication(credit_used=credit_used, remaining_amount=sale_remaining - credit_used)


def settle_with_credit(transaction: Transaction, credit_balance: int) -> Transaction:
    """
    Cover a new credit or mixed sale with available credit.

    The credit used moves from remaining_amount into paid_amount and is kept
    on the transaction as credit_applied; status is re-derived. Anything else
    is returned unchanged.
    """
    if (
        transaction.type != TransactionType.SALE
        or transaction.payment_method not in CREDIT_SETTLED_METHODS
        or credit_balance <= 0
        or not transaction.remaining_amount
    ):
        return transaction

    application = apply_credit_to_sale(credit_balance, transaction.remaining_amount)
    paid = transaction.paid_amount + application.credit_used
    status = calculate_status(transaction.type, transaction.amount, paid, application.remaining_amount)
    return replace(
        transaction,
        paid_amount=paid,
        remaining_amount=application.remaining_amount,
        credit_applied=application.credit_used,
        status=status.status,
    )


def apply_to_balances(balances: BalanceSnapshot, transaction: Transaction) -> BalanceSnapshot:
    """
    Write-time path: apply one new transaction to a customer's stored balances.

    Applied-to-debt payments always go through handle_overpayment, so any excess
    over the current debt lands in credit. Credit a sale consumed is taken off
    the credit balance. Both balances stay non-negative.
    """
    if transaction.is_deleted:
        return balances

    if transaction.type == TransactionType.PAYMENT and transaction.applied_to_debt:
        outstanding = max(0, balances.outstanding)
        split = handle_overpayment(transaction.amount, outstanding)
        return BalanceSnapshot(
            outstanding=outstanding - split.debt_cleared,
            credit=max(0, balances.credit) + split.credit_created,
        )

    impact = calculate_customer_balance_impact(
        transaction.type,
        transaction.payment_method,
        transaction.amount,
        transaction.remaining_amount,
        transaction.applied_to_debt,
    )
    return BalanceSnapshot(
        outstanding=max(0, balances.outstanding + impact.debt_change),
        credit=max(0, balances.credit + impact.credit_change - transaction.credit_applied),
    )


def reverse_from_balances(balances: BalanceSnapshot, transaction: Transaction) -> BalanceSnapshot:
    """
    Undo one stored transaction's effect, for edits and soft deletes.

    Only the transaction's own delta is reversed; any drift already on the
    balances stays there for the auditor to find. An applied payment is
    reclaimed from credit first, up to its amount, and the rest is owed again.

    The result is not clamped: an edit applies the new version on top of it,
    and only the final balances must be non-negative (see clamp_balances).
    """
    if transaction.is_deleted:
        return balances

    if transaction.type == TransactionType.PAYMENT and transaction.applied_to_debt:
        reclaimed = min(max(0, balances.credit), transaction.amount)
        return BalanceSnapshot(
            outstanding=balances.outstanding + transaction.amount - reclaimed,
            credit=balances.credit - reclaimed,
        )

    impact = calculate_customer_balance_impact(
        transaction.type,
        transaction.payment_method,
        transaction.amount,
        transaction.remaining_amount,
        transaction.applied_to_debt,
    )
    return BalanceSnapshot(
        outstanding=balances.outstanding - impact.debt_change,
        credit=balances.credit - impact.credit_change + transaction.credit_applied,
    )


def clamp_balances(balances: BalanceSnapshot) -> BalanceSnapshot:
    return BalanceSnapshot(outstanding=max(0, balances.outstanding), credit=max(0, balances.credit))


def spend_contribution(transaction: Transaction) -> int:
    """Amount a transaction adds to the customer's lifetime total_spent"""
    if transaction.is_deleted or transaction.type != TransactionType.SALE:
        return 0
    return transaction.amount
