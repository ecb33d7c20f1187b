"""Tax audit log - append-only history of changes to tax-critical fields"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from deed_ledger.domain.exceptions import AuditReasonRequiredError, NotFoundError
from deed_ledger.domain.models import AuditLogEntry, EntityType
from deed_ledger.infrastructure.database.repositories import (
    AuditLogRepository,
    ContractRepository,
    PaymentRepository,
    audit_to_domain,
)
from deed_ledger.infrastructure.observability.logging import log_field_change as log_audit_event
from deed_ledger.infrastructure.observability.metrics import audit_entries_counter
from deed_ledger.utils.money import money_text

# attribute -> field name recorded in the log
TRACKED_FIELDS = {
    EntityType.CONTRACT: {
        "contract_price": "contractPrice",
        "cost_basis": "costBasis",
        "down_payment": "downPayment",
        "opening_receivable": "openingReceivable",
        "transfer_date": "transferDate",
        "close_date": "closeDate",
    },
    EntityType.PAYMENT: {
        "payment_date": "paymentDate",
        "amount_total": "amountTotal",
        "principal_amount": "principalAmount",
        "late_fee_amount": "lateFeeAmount",
    },
}


def canonical_value(value: Any) -> Optional[str]:
    """Text form used for comparison and storage: 2-place money, ISO dates"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return money_text(value)
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    text = str(value).strip()
    return text or None


def require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise AuditReasonRequiredError()
    return reason.strip()


def log_field_change(
    db: Session,
    entity_type: EntityType,
    entity_id: int,
    field: str,
    old_value: Any,
    new_value: Any,
    actor: str,
    reason: Optional[str],
) -> Optional[AuditLogEntry]:
    """
    Append an audit entry for a tracked field.

    No-op (returns None) for untracked fields and for changes whose canonical
    old and new values are equal. A blank reason raises AuditReasonRequiredError.
    The entry is flushed inside the caller's transaction.
    """
    reason = require_reason(reason)

    tracked = TRACKED_FIELDS[entity_type]
    if field in tracked:
        label = tracked[field]
    elif field in tracked.values():
        label = field
    else:
        return None

    old_text, new_text = canonical_value(old_value), canonical_value(new_value)
    if old_text == new_text:
        return None

    entry = AuditLogEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        field=label,
        old_value=old_text,
        new_value=new_text,
        changed_by=actor,
        reason=reason,
    )
    record = AuditLogRepository(db).append(entry)

    audit_entries_counter.labels(entity_type=entity_type.value).inc()
    log_audit_event(entity_type.value, entity_id, label, old_text, new_text, actor, reason)
    return audit_to_domain(record)


def get_audit_log_for_contract(db: Session, contract_id: int) -> List[AuditLogEntry]:
    """Entries for the contract itself and for every payment recorded against it"""
    if ContractRepository(db).get_by_id(contract_id) is None:
        raise NotFoundError("Contract", contract_id)
    payment_ids = [p.id for p in PaymentRepository(db).list_by_contract(contract_id)]
    records = AuditLogRepository(db).list_for_entities(contract_ids=[contract_id], payment_ids=payment_ids)
    return [audit_to_domain(r) for r in records]


def get_audit_log_for_payment(db: Session, payment_id: int) -> List[AuditLogEntry]:
    if PaymentRepository(db).get_by_id(payment_id) is None:
        raise NotFoundError("Payment", payment_id)
    records = AuditLogRepository(db).list_for_entities(payment_ids=[payment_id])
    return [audit_to_domain(r) for r in records]
