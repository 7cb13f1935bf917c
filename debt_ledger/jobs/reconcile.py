"""Reconciliation job - one audit (and optional repair) over the whole ledger"""

import logging
from typing import Callable, Optional
from sqlalchemy.orm import Session

from debt_ledger.config import settings
from debt_ledger.domain.exceptions import RepairError
from debt_ledger.domain.models import ReconciliationResult
from debt_ledger.infrastructure.database.repositories import SqlLedgerRepository
from debt_ledger.infrastructure.database.session import SessionLocal
from debt_ledger.infrastructure.observability.logging import setup_logging
from debt_ledger.services.reconciliation import ReconciliationAuditor


def run_reconciliation(
    repair: bool = False,
    dry_run: Optional[bool] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    configure_logging: bool = True,
) -> ReconciliationResult:
    """
    Audit every customer and optionally repair drift.

    Flow:
    1. Open a session
    2. Audit (read-only)
    3. If repair is requested, rewrite flagged customers in one transaction;
       dry_run (default from settings, normally True) discards the writes
    4. Close the session
    """
    if configure_logging:
        setup_logging(settings.log_level)
    if dry_run is None:
        dry_run = settings.reconcile_dry_run

    db = session_factory()
    auditor = ReconciliationAuditor(SqlLedgerRepository(db))
    try:
        result = auditor.run(repair=repair, dry_run=dry_run)
        # Audit-only runs leave nothing to commit
        db.rollback()
        return result

    except RepairError as e:
        logging.error(f"Balance repair failed: {e}", extra={"run_id": auditor.run_id})
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected reconciliation error: {e}")
        raise

    finally:
        db.close()
