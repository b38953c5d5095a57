"""Structured JSON logging for ledger operations"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from hire_purchase.config import settings
from hire_purchase.domain.models import Allocation, Reconciliation

logger = logging.getLogger("hire_purchase.ledger")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_reconciliation(request_id: str, sale_id: str, step: str, previous_status: str | None, result: Reconciliation) -> None:
    """Log the derived state written back for a sale"""
    logger.info(
        "Sale reconciled",
        extra={
            "request_id": request_id,
            "sale_id": sale_id,
            "step": step,
            "previous_status": previous_status,
            "status": result.status,
            "remaining_installment_cents": result.remaining_installment_cents,
            "current_profit_cents": result.current_profit_cents,
        },
    )


def log_card_repayment(request_id: str, card_id: str, allocation: Allocation, remaining_balance_cents: int) -> None:
    """Log how a card repayment was spread over usages"""
    logger.info(
        "Card repayment allocated",
        extra={
            "request_id": request_id,
            "card_id": card_id,
            "step": "card_repayment",
            "amount_cents": allocation.requested_cents,
            "applied_cents": allocation.applied_cents,
            "unallocated_cents": allocation.unallocated_cents,
            "usages_touched": len(allocation.deductions),
            "remaining_balance_cents": remaining_balance_cents,
        },
    )
