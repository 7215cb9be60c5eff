"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from finance_tracker.config import settings


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


def log_loan_created(request_id: str, owner_id: str, loan_id: str, role: str) -> None:
    logging.info(
        "Loan created",
        extra={
            "request_id": request_id,
            "owner_id": owner_id,
            "loan_id": loan_id,
            "step": "loan_created",
            "role": role,
        },
    )


def log_settlement(
    request_id: str,
    owner_id: str,
    loan_id: str,
    outcome: str,
    entry_count: int,
    duration_ms: Optional[float] = None,
) -> None:
    """Log structured settlement outcome (settled | noop | rejected)"""
    logging.info(
        "Settlement completed",
        extra={
            "request_id": request_id,
            "owner_id": owner_id,
            "loan_id": loan_id,
            "step": "settlement_complete",
            "settlement_outcome": outcome,
            "entry_count": entry_count,
            "duration_ms": duration_ms,
        },
    )


def log_cascade_delete(request_id: str, owner_id: str, loan_id: str, trigger: str, entries_deleted: int) -> None:
    logging.info(
        "Loan cascade delete",
        extra={
            "request_id": request_id,
            "owner_id": owner_id,
            "loan_id": loan_id,
            "step": "cascade_delete",
            "trigger": trigger,
            "entries_deleted": entries_deleted,
        },
    )
