"""Structured JSON logging for reconciliation audit trails"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from payroll_recon.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None) -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level or settings.log_level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        json_default=str,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_match(
    code: str,
    target_amount: Decimal,
    matched: bool,
    entry_count: int,
    difference: Optional[Decimal],
    duration_ms: float,
) -> None:
    """Log structured match outcome for one target code"""
    logging.getLogger("payroll_recon.matching").info(
        "Match completed",
        extra={
            "step": "match_complete",
            "code": code,
            "target_amount": str(target_amount),
            "match_outcome": "exact" if matched else "none",
            "entry_count": entry_count,
            "difference": None if difference is None else str(difference),
            "duration_ms": duration_ms,
        },
    )


def log_ingestion(entry_count: int, skipped_rows: int, columns: Any) -> None:
    """Log structured worksheet ingestion summary"""
    logging.getLogger("payroll_recon.ingestion").info(
        "Ledger ingested",
        extra={
            "step": "ingestion_complete",
            "entry_count": entry_count,
            "skipped_rows": skipped_rows,
            "account_column": columns.account,
            "description_column": columns.description,
            "amount_column": columns.amount,
            "date_column": columns.date,
        },
    )
