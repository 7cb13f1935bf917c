"""
Storage interface the reconciliation engine depends on.

The engine never talks to a database directly; it receives an implementation
of this interface (SQLAlchemy in production, a mock or in-memory double in
tests).
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from debt_ledger.domain.models import Customer, Discrepancy, Transaction


class LedgerRepository(ABC):
    """Read customers and transactions, write corrected balances"""

    @abstractmethod
    def list_customers(self) -> List[Customer]:
        """All customers with their currently stored balances"""
        pass

    @abstractmethod
    def list_transactions(self, customer_id: Optional[str] = None) -> List[Transaction]:
        """
        Non-deleted transactions, ordered by date ascending.

        Args:
            customer_id: Restrict to one customer; None returns every
                transaction, including ones whose customer no longer exists
        """
        pass

    @abstractmethod
    def apply_balance_corrections(self, discrepancies: Sequence[Discrepancy], dry_run: bool = True) -> int:
        """
        Overwrite stored balances with the computed values, all-or-nothing.

        Args:
            discrepancies: Customers to correct
            dry_run: Perform the writes, then discard them instead of committing

        Returns:
            Number of customers updated (or that would have been)

        Raises:
            RepairError: The batch failed and nothing was written
        """
        pass
