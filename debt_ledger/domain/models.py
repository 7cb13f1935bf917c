"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from debt_ledger.domain.exceptions import InvalidTransactionDataError


class _LedgerEnum(str, Enum):
    """String enum that rejects unknown values with a domain error"""

    @classmethod
    def parse(cls, value: "str | _LedgerEnum"):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidTransactionDataError(
                f"Unknown {cls.__name__} {value!r}; expected one of {[m.value for m in cls]}"
            ) from None


class TransactionType(_LedgerEnum):
    SALE = "sale"
    PAYMENT = "payment"
    CREDIT = "credit"
    REFUND = "refund"


class PaymentMethod(_LedgerEnum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    POS_CARD = "pos_card"
    CREDIT = "credit"
    MIXED = "mixed"


class TransactionStatus(_LedgerEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


# Methods that settle a sale in full at the till
IMMEDIATE_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.BANK_TRANSFER, PaymentMethod.POS_CARD})


@dataclass
class Transaction:
    """One entry in a customer's ledger. Amounts are in kobo."""

    id: str
    customer_id: str
    type: TransactionType
    amount: int
    date: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    paid_amount: int = 0
    remaining_amount: Optional[int] = None
    applied_to_debt: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED
    is_deleted: bool = False
    sequence: int = 0  # insertion order, breaks ties between equal dates
    credit_applied: int = 0  # customer credit consumed by a sale, included in paid_amount


@dataclass
class Customer:
    """Customer with incrementally maintained balances (kobo)"""

    id: str
    name: str = ""
    outstanding_balance: int = 0
    credit_balance: int = 0
    total_spent: int = 0


@dataclass
class StatusResult:
    """Output of status calculation"""

    status: TransactionStatus
    paid_amount: int
    remaining_amount: int
    percentage_paid: float


@dataclass
class InitialAmounts:
    """Paid/remaining split for a new transaction"""

    paid_amount: int
    remaining_amount: int
    payment_method: PaymentMethod


@dataclass
class DebtImpact:
    """Magnitude and direction of a transaction's effect on outstanding debt"""

    change: int
    is_increase: bool
    is_decrease: bool


@dataclass
class BalanceImpact:
    """Signed changes to apply to a customer's two balance fields"""

    debt_change: int
    credit_change: int


@dataclass
class OverpaymentSplit:
    debt_cleared: int
    credit_created: int


@dataclass
class CreditApplication:
    """Customer credit used against a sale and what the sale still leaves owing"""

    credit_used: int
    remaining_amount: int


@dataclass
class PaymentAuditEntry:
    """One money movement between a customer's debt and credit balances"""

    id: str
    customer_id: str
    transaction_id: Optional[str]
    type: str  # payment | overpayment | credit_used
    amount: int
    description: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class BalanceSnapshot:
    """Outstanding debt and credit balance at a point in time"""

    outstanding: int = 0
    credit: int = 0


@dataclass
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None


@dataclass
class ParseResult:
    success: bool
    value: Optional[float] = None
    error: Optional[str] = None


@dataclass
class Discrepancy:
    """Stored vs recomputed balances for one customer"""

    customer_id: str
    stored_outstanding: int
    computed_outstanding: int
    stored_credit: int
    computed_credit: int
    transaction_count: int

    @property
    def outstanding_drift(self) -> int:
        return self.stored_outstanding - self.computed_outstanding

    @property
    def credit_drift(self) -> int:
        return self.stored_credit - self.computed_credit


@dataclass
class AuditReport:
    """Result of a read-only reconciliation pass"""

    discrepancies: List[Discrepancy] = field(default_factory=list)
    orphaned_transactions: List[Transaction] = field(default_factory=list)
    customers_checked: int = 0
    customers_skipped: int = 0

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies and not self.orphaned_transactions


@dataclass
class ReconciliationResult:
    report: AuditReport
    repaired_count: int
    dry_run: bool


@dataclass
class CustomerDebtSummary:
    customer_id: str
    calculated_debt: int
    stored_debt: int
    discrepancy: int
    transaction_count: int
    last_transaction_date: Optional[datetime]


@dataclass
class TransactionIssue:
    """A single rule violation found on a stored transaction"""

    transaction_id: str
    customer_id: str
    issue_type: str  # amount_inconsistency | payment_method | status_mismatch
    description: str
    expected: Any
    actual: Any
    severity: str  # low | medium | high | critical


@dataclass
class IntegrityReport:
    is_valid: bool
    issues: List[TransactionIssue]
    summary: Dict[str, int]
