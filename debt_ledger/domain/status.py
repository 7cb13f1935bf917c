"""Transaction status derivation and initial paid/remaining resolution"""

from datetime import datetime
from typing import Optional, Union

from debt_ledger.domain.exceptions import InvalidAmountError
from debt_ledger.domain.models import (
    InitialAmounts,
    PaymentMethod,
    StatusResult,
    Transaction,
    TransactionStatus,
    TransactionType,
)

# Types that represent a finished money movement the moment they are recorded
SETTLED_TYPES = frozenset({TransactionType.PAYMENT, TransactionType.REFUND})


def _normalize(value: Optional[float], field_name: str) -> int:
    """None → 0, floats rounded to whole kobo, negatives rejected"""
    if value is None:
        return 0
    normalized = int(round(value))
    if normalized < 0:
        raise InvalidAmountError(f"{field_name} cannot be negative, got {value}")
    return normalized


def calculate_status(
    type_: Union[str, TransactionType],
    total_amount: Optional[float],
    paid_amount: Optional[float],
    remaining_amount: Optional[float],
) -> StatusResult:
    """
    Derive status and percentage paid for a transaction.

    Rules (first match wins):
    - payment / refund: always completed
    - total == 0: completed, nothing is outstanding
    - remaining == 0: completed
    - 0 < remaining < total: partial
    - remaining >= total: pending

    Only remaining vs total decides the status of a sale or credit;
    paid_amount feeds percentage_paid alone.
    """
    tx_type = TransactionType.parse(type_)
    total = _normalize(total_amount, "total_amount")
    paid = _normalize(paid_amount, "paid_amount")
    remaining = _normalize(remaining_amount, "remaining_amount")

    percentage_paid = round(paid / total * 100, 2) if total > 0 else 0.0

    if tx_type in SETTLED_TYPES or total == 0 or remaining == 0:
        status = TransactionStatus.COMPLETED
    elif remaining < total:
        status = TransactionStatus.PARTIAL
    else:
        status = TransactionStatus.PENDING

    return StatusResult(
        status=status,
        paid_amount=paid,
        remaining_amount=remaining,
        percentage_paid=percentage_paid,
    )


def resolve_initial_amounts(
    type_: Union[str, TransactionType],
    payment_method: Union[str, PaymentMethod, None],
    amount: int,
    provided_paid_amount: Optional[int] = None,
) -> InitialAmounts:
    """
    Compute the paid/remaining split for a new transaction.

    - credit: nothing paid up front, method forced to credit
    - payment: fully paid, method defaults to cash
    - sale: cash/bank_transfer/pos_card fully paid, credit fully owed,
      mixed uses provided_paid_amount (absent → fully paid)
    - refund: fully paid, method defaults to cash

    Raises:
        InvalidAmountError: amount <= 0 or provided_paid_amount < 0
    """
    tx_type = TransactionType.parse(type_)
    method = PaymentMethod.parse(payment_method) if payment_method else PaymentMethod.CASH

    if amount is None or amount <= 0:
        raise InvalidAmountError(f"Transaction amount must be greater than 0, got {amount}")
    if provided_paid_amount is not None and provided_paid_amount < 0:
        raise InvalidAmountError(f"Paid amount cannot be negative, got {provided_paid_amount}")

    if tx_type == TransactionType.CREDIT:
        return InitialAmounts(paid_amount=0, remaining_amount=amount, payment_method=PaymentMethod.CREDIT)

    if tx_type == TransactionType.SALE:
        if method == PaymentMethod.CREDIT:
            return InitialAmounts(paid_amount=0, remaining_amount=amount, payment_method=method)
        if method == PaymentMethod.MIXED:
            paid = amount if provided_paid_amount is None else provided_paid_amount
            return InitialAmounts(
                paid_amount=paid,
                remaining_amount=max(0, amount - paid),
                payment_method=method,
            )
        return InitialAmounts(paid_amount=amount, remaining_amount=0, payment_method=method)

    # payment and refund: the money has already moved
    return InitialAmounts(paid_amount=amount, remaining_amount=0, payment_method=method)


def build_transaction(
    id: str,
    customer_id: str,
    type_: Union[str, TransactionType],
    amount: int,
    date: datetime,
    payment_method: Union[str, PaymentMethod, None] = None,
    paid_amount: Optional[int] = None,
    applied_to_debt: bool = False,
    sequence: int = 0,
) -> Transaction:
    """Resolve the initial split, derive the status and assemble the record to persist"""
    tx_type = TransactionType.parse(type_)
    initial = resolve_initial_amounts(tx_type, payment_method, amount, paid_amount)
    status = calculate_status(tx_type, amount, initial.paid_amount, initial.remaining_amount)

    return Transaction(
        id=id,
        customer_id=customer_id,
        type=tx_type,
        amount=amount,
        date=date,
        payment_method=initial.payment_method,
        paid_amount=status.paid_amount,
        remaining_amount=status.remaining_amount,
        # only payments carry the flag
        applied_to_debt=bool(applied_to_debt) and tx_type == TransactionType.PAYMENT,
        status=status.status,
        sequence=sequence,
    )
