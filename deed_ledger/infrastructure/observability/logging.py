"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from deed_ledger.config import settings


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


def log_field_change(
    entity_type: str,
    entity_id: int,
    field: str,
    old_value: Optional[str],
    new_value: Optional[str],
    actor: str,
    reason: str,
) -> None:
    """Log an audited tax-critical field change"""
    logging.info(
        "Audited field change",
        extra={
            "step": "audit_log",
            "entity_type": entity_type,
            "entity_id": entity_id,
            "field": field,
            "old_value": old_value,
            "new_value": new_value,
            "actor": actor,
            "reason": reason,
        },
    )


def log_import_result(imported: int, error_count: int, duration_ms: float) -> None:
    """Log batch contract import outcome"""
    logging.info(
        "Contract import completed",
        extra={
            "step": "contract_import",
            "imported": imported,
            "error_count": error_count,
            "outcome": "clean" if error_count == 0 else "partial",
            "duration_ms": duration_ms,
        },
    )


def log_schedule_regenerated(contract_id: int, property_id: str, installment_count: int) -> None:
    """Log installment schedule regeneration"""
    logging.info(
        "Installment schedule regenerated",
        extra={
            "step": "schedule_regenerated",
            "contract_id": contract_id,
            "property_id": property_id,
            "installment_count": installment_count,
        },
    )


def log_data_quality_run(contract_count: int, exception_count: int, duration_ms: float) -> None:
    """Log a data-quality validation sweep"""
    logging.info(
        "Data-quality validation completed",
        extra={
            "step": "data_quality",
            "contract_count": contract_count,
            "exception_count": exception_count,
            "duration_ms": duration_ms,
        },
    )
