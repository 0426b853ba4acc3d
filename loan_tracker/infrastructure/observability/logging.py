"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from loan_tracker.config import settings


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


def log_payment(
    owner_id: str,
    loan_id: str,
    amount: float,
    remaining_balance: float,
    status: str,
) -> None:
    """Log structured payment outcome for cash-flow analysis"""
    logging.info(
        "Payment recorded",
        extra={
            "owner_id": owner_id,
            "loan_id": loan_id,
            "step": "payment_recorded",
            "amount": amount,
            "remaining_balance": remaining_balance,
            "loan_status": status,
        },
    )


def log_loan_change(
    owner_id: str,
    loan_id: str,
    action: str,
    discarded_fields: tuple = (),
) -> None:
    """Log a loan create/update, including edits dropped by the payment lock"""
    logging.info(
        f"Loan {action}",
        extra={
            "owner_id": owner_id,
            "loan_id": loan_id,
            "step": f"loan_{action}",
            "discarded_fields": list(discarded_fields),
        },
    )
