"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from debt_ledger.config import settings
from debt_ledger.domain.models import AuditReport


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_audit_summary(run_id: str, report: AuditReport, duration_ms: float) -> None:
    """Log the outcome of a reconciliation pass"""
    level = logging.WARNING if not report.is_consistent else logging.INFO
    logging.log(
        level,
        "Reconciliation audit completed",
        extra={
            "run_id": run_id,
            "step": "audit_complete",
            "customers_checked": report.customers_checked,
            "customers_skipped": report.customers_skipped,
            "discrepancy_count": len(report.discrepancies),
            "orphaned_count": len(report.orphaned_transactions),
            "duration_ms": duration_ms,
        },
    )
    for d in report.discrepancies:
        logging.warning(
            "Balance drift detected",
            extra={
                "run_id": run_id,
                "customer_id": d.customer_id,
                "stored_outstanding": d.stored_outstanding,
                "computed_outstanding": d.computed_outstanding,
                "stored_credit": d.stored_credit,
                "computed_credit": d.computed_credit,
                "transaction_count": d.transaction_count,
            },
        )


def log_repair(run_id: str, repaired_count: int, dry_run: bool) -> None:
    """Log a repair step, committed or discarded"""
    logging.info(
        "Balance repair discarded (dry run)" if dry_run else "Balance repair committed",
        extra={
            "run_id": run_id,
            "step": "repair_complete",
            "repaired_count": repaired_count,
            "dry_run": dry_run,
        },
    )
