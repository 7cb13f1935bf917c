"""
Input validators.

These return structured results instead of raising so forms and batch
scripts can show the message directly.
"""

import math
from typing import List, Optional, Union

from debt_ledger.domain.models import (
    IMMEDIATE_METHODS,
    ParseResult,
    PaymentMethod,
    TransactionType,
    ValidationResult,
)

# One kobo of slack when the cash/credit parts are entered separately
MIXED_PAYMENT_TOLERANCE = 0.01

_VALID_METHODS = {
    TransactionType.SALE: [
        PaymentMethod.CASH,
        PaymentMethod.BANK_TRANSFER,
        PaymentMethod.POS_CARD,
        PaymentMethod.CREDIT,
        PaymentMethod.MIXED,
    ],
    TransactionType.PAYMENT: sorted(IMMEDIATE_METHODS, key=lambda m: m.value),
    TransactionType.CREDIT: [PaymentMethod.CREDIT],
    TransactionType.REFUND: sorted(IMMEDIATE_METHODS, key=lambda m: m.value),
}


def validate_mixed_payment(total: float, cash: float, credit: Optional[float] = None) -> ValidationResult:
    """
    Check that a cash + credit split adds up to the total.

    A mixed payment must leave something on credit, so cash == total is
    rejected even though the parts add up.
    """
    total = total or 0
    cash = cash or 0
    credit = credit or 0

    if cash < 0 or credit < 0:
        return ValidationResult(is_valid=False, error="Payment amounts cannot be negative")

    if abs(cash + credit - total) > MIXED_PAYMENT_TOLERANCE:
        return ValidationResult(is_valid=False, error="Payment amounts must equal total amount")

    if cash >= total:
        return ValidationResult(
            is_valid=False,
            error="For mixed payments, cash amount must be less than total",
        )

    return ValidationResult(is_valid=True)


def parse_amount(value: Union[str, int, float, None], field_name: str) -> ParseResult:
    """Parse user-entered numeric input, e.g. " 1500.50 " → 1500.5"""
    if isinstance(value, bool):
        return ParseResult(success=False, error=f"{field_name} is not a valid number")

    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return ParseResult(success=False, error=f"{field_name} is not a valid number")
        return ParseResult(success=True, value=value)

    trimmed = "" if value is None else str(value).strip()
    if trimmed == "":
        return ParseResult(success=False, error=f"{field_name} is required")

    try:
        parsed = float(trimmed.replace(",", ""))
    except ValueError:
        return ParseResult(success=False, error=f'{field_name} must be a valid number, got "{value}"')

    if math.isnan(parsed) or math.isinf(parsed):
        return ParseResult(success=False, error=f'{field_name} must be a valid number, got "{value}"')
    return ParseResult(success=True, value=parsed)


def validate_transaction_amount(value: Union[str, int, float, None]) -> ValidationResult:
    parsed = parse_amount(value, "Amount")
    if not parsed.success or parsed.value <= 0:
        return ValidationResult(is_valid=False, error="Please enter a valid amount greater than 0")
    return ValidationResult(is_valid=True)


def validate_applied_to_debt(type_: Union[str, TransactionType], applied_to_debt: Optional[bool]) -> ValidationResult:
    """Payments must say whether they settle debt or go to credit"""
    if TransactionType.parse(type_) == TransactionType.PAYMENT and applied_to_debt is None:
        return ValidationResult(is_valid=False, error="Please specify how to apply this payment")
    return ValidationResult(is_valid=True)


def valid_payment_methods_for_type(type_: Union[str, TransactionType]) -> List[PaymentMethod]:
    return list(_VALID_METHODS[TransactionType.parse(type_)])


def is_valid_payment_method_for_type(
    type_: Union[str, TransactionType],
    payment_method: Union[str, PaymentMethod],
) -> bool:
    return PaymentMethod.parse(payment_method) in _VALID_METHODS[TransactionType.parse(type_)]
