"""Unit tests for status derivation and initial amount resolution"""

import pytest
from datetime import datetime
from debt_ledger.domain.exceptions import InvalidAmountError, InvalidTransactionDataError
from debt_ledger.domain.models import PaymentMethod, TransactionStatus, TransactionType
from debt_ledger.domain.status import build_transaction, calculate_status, resolve_initial_amounts


@pytest.mark.parametrize("type_", ["payment", "refund"])
@pytest.mark.parametrize(
    "total,paid,remaining",
    [(1000, 0, 1000), (1000, 400, 600), (1000, 1000, 0), (0, 0, 0), (500, None, None)],
)
def test_payment_and_refund_always_completed(type_, total, paid, remaining):
    """Test money movements are completed whatever the bookkeeping says"""
    assert calculate_status(type_, total, paid, remaining).status == TransactionStatus.COMPLETED


@pytest.mark.parametrize("type_", ["sale", "credit"])
def test_sale_credit_status_three_way(type_):
    """Test status follows remaining vs total only"""
    assert calculate_status(type_, 1000, 1000, 0).status == TransactionStatus.COMPLETED
    assert calculate_status(type_, 1000, 300, 700).status == TransactionStatus.PARTIAL
    assert calculate_status(type_, 1000, 0, 1000).status == TransactionStatus.PENDING
    assert calculate_status(type_, 1000, 0, 1500).status == TransactionStatus.PENDING


def test_status_ignores_paid_amount():
    """Test paid_amount changes percentage but never status"""
    a = calculate_status("sale", 1000, 0, 400)
    b = calculate_status("sale", 1000, 900, 400)
    assert a.status == b.status == TransactionStatus.PARTIAL
    assert a.percentage_paid == 0.0
    assert b.percentage_paid == 90.0


def test_status_nulls_normalize_to_zero():
    """Test None paid/remaining normalize to 0, so nothing is outstanding"""
    result = calculate_status("sale", 1000, None, None)

    assert result.status == TransactionStatus.COMPLETED
    assert result.paid_amount == 0
    assert result.remaining_amount == 0
    assert result.percentage_paid == 0.0


def test_status_zero_total():
    """Test a zero-amount transaction is completed with 0% paid"""
    result = calculate_status("credit", 0, 0, 0)
    assert result.status == TransactionStatus.COMPLETED
    assert result.percentage_paid == 0.0


def test_percentage_paid_rounding():
    result = calculate_status("sale", 3000, 1000, 2000)
    assert result.percentage_paid == 33.33


def test_status_rejects_negative_and_unknown():
    with pytest.raises(InvalidAmountError):
        calculate_status("sale", -1, 0, 0)
    with pytest.raises(InvalidTransactionDataError):
        calculate_status("loan", 1000, 0, 1000)


def test_initial_amounts_credit_forces_method():
    """Test credit transactions are never paid up front"""
    result = resolve_initial_amounts("credit", "cash", 5000)
    assert (result.paid_amount, result.remaining_amount) == (0, 5000)
    assert result.payment_method == PaymentMethod.CREDIT


def test_initial_amounts_payment_defaults_to_cash():
    result = resolve_initial_amounts("payment", None, 2500)
    assert (result.paid_amount, result.remaining_amount) == (2500, 0)
    assert result.payment_method == PaymentMethod.CASH

    result = resolve_initial_amounts("payment", "bank_transfer", 2500)
    assert result.payment_method == PaymentMethod.BANK_TRANSFER


@pytest.mark.parametrize("method", ["cash", "bank_transfer", "pos_card"])
def test_initial_amounts_sale_immediate_methods(method):
    result = resolve_initial_amounts("sale", method, 4000)
    assert (result.paid_amount, result.remaining_amount) == (4000, 0)
    assert result.payment_method == PaymentMethod(method)


def test_initial_amounts_sale_on_credit():
    result = resolve_initial_amounts("sale", "credit", 4000)
    assert (result.paid_amount, result.remaining_amount) == (0, 4000)


def test_initial_amounts_mixed_sale():
    """Test mixed sale keeps the provided split"""
    result = resolve_initial_amounts("sale", "mixed", 2000, 800)
    assert (result.paid_amount, result.remaining_amount) == (800, 1200)
    assert result.payment_method == PaymentMethod.MIXED


def test_initial_amounts_mixed_without_split_is_fully_paid():
    result = resolve_initial_amounts("sale", "mixed", 2000)
    assert (result.paid_amount, result.remaining_amount) == (2000, 0)


def test_initial_amounts_mixed_overpaid_clamps_remaining():
    result = resolve_initial_amounts("sale", "mixed", 2000, 2500)
    assert result.remaining_amount == 0


def test_initial_amounts_refund():
    result = resolve_initial_amounts("refund", "", 700)
    assert (result.paid_amount, result.remaining_amount) == (700, 0)
    assert result.payment_method == PaymentMethod.CASH


@pytest.mark.parametrize("amount", [0, -100])
def test_initial_amounts_rejects_non_positive(amount):
    with pytest.raises(InvalidAmountError):
        resolve_initial_amounts("sale", "cash", amount)


def test_initial_amounts_rejects_negative_paid():
    with pytest.raises(InvalidAmountError):
        resolve_initial_amounts("sale", "mixed", 1000, -1)


def test_initial_amounts_rejects_unknown_method():
    with pytest.raises(InvalidTransactionDataError):
        resolve_initial_amounts("sale", "cheque", 1000)


def test_build_transaction_mixed_sale():
    """Test resolver output flows into status for a partially paid sale"""
    tx = build_transaction(
        id="t1",
        customer_id="c1",
        type_="sale",
        amount=2000,
        date=datetime(2024, 1, 1),
        payment_method="mixed",
        paid_amount=800,
    )

    assert tx.type == TransactionType.SALE
    assert tx.paid_amount == 800
    assert tx.remaining_amount == 1200
    assert tx.status == TransactionStatus.PARTIAL


def test_build_transaction_applied_to_debt_only_on_payments():
    sale = build_transaction("t1", "c1", "sale", 100, datetime(2024, 1, 1), applied_to_debt=True)
    payment = build_transaction("t2", "c1", "payment", 100, datetime(2024, 1, 1), applied_to_debt=True)

    assert sale.applied_to_debt is False
    assert payment.applied_to_debt is True
    assert payment.status == TransactionStatus.COMPLETED
