"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from quantum_credits.config import settings


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


def log_generation(
    request_id: str,
    sample: int,
    credits_awarded: int,
    used_fallback: bool,
    balance: Decimal,
    duration_ms: float,
) -> None:
    """Log structured generation outcome"""
    logging.info(
        "Generation completed",
        extra={
            "request_id": request_id,
            "step": "generation_complete",
            "sample": sample,
            "credits_awarded": credits_awarded,
            "used_fallback": used_fallback,
            "balance": str(balance),
            "duration_ms": duration_ms,
        },
    )


def log_withdrawal(
    request_id: str,
    outcome: str,
    amount: Any,
    masked_account: str | None,
    duration_ms: float,
) -> None:
    """Log structured withdrawal outcome; never receives the unmasked account"""
    logging.info(
        "Withdrawal finished",
        extra={
            "request_id": request_id,
            "step": "withdrawal_complete",
            "outcome": outcome,
            "amount": str(amount),
            "masked_account": masked_account,
            "duration_ms": duration_ms,
        },
    )
