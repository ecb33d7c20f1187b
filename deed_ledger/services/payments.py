"""Payment recording and audited payment corrections"""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from deed_ledger.config import settings
from deed_ledger.domain.contract_rules import validate_payment_split
from deed_ledger.domain.exceptions import NotFoundError, ValidationError
from deed_ledger.domain.models import EntityType, Payment
from deed_ledger.infrastructure.database.repositories import (
    PAYMENT_COLUMNS,
    ContractRepository,
    PaymentRepository,
    payment_to_domain,
)
from deed_ledger.services.audit import TRACKED_FIELDS, log_field_change, require_reason

REQUIRED_FIELDS = {
    "payment_date": "paymentDate",
    "amount_total": "amountTotal",
    "principal_amount": "principalAmount",
    "late_fee_amount": "lateFeeAmount",
    "received_by": "receivedBy",
    "channel": "channel",
}


def create_payment(db: Session, payment: Payment) -> Payment:
    """Record a receipt; principal + late fee must equal the total within one cent"""
    try:
        contract = ContractRepository(db).get_by_id(payment.contract_id)
        if contract is None:
            raise NotFoundError("Contract", payment.contract_id)
        validate_payment_split(payment.amount_total, payment.principal_amount, payment.late_fee_amount)

        record = PaymentRepository(db).create(payment, contract.property_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return payment_to_domain(record)


def get_payment(db: Session, payment_id: int) -> Payment:
    record = PaymentRepository(db).get_by_id(payment_id)
    if record is None:
        raise NotFoundError("Payment", payment_id)
    return payment_to_domain(record)


def list_payments(db: Session, contract_id: Optional[int] = None) -> List[Payment]:
    repo = PaymentRepository(db)
    records = repo.list_all() if contract_id is None else repo.list_by_contract(contract_id)
    return [payment_to_domain(r) for r in records]


def update_payment(
    db: Session,
    payment_id: int,
    changes: Dict[str, Any],
    actor: Optional[str] = None,
    reason: Optional[str] = None,
) -> Payment:
    """Correct a payment; amount and date changes are audited and need a reason"""
    reason = require_reason(reason)
    actor = actor or settings.default_actor

    unknown = sorted(set(changes) - set(PAYMENT_COLUMNS))
    if unknown:
        raise ValidationError(f"Unknown payment field(s): {', '.join(unknown)}")

    for attr, label in REQUIRED_FIELDS.items():
        if attr in changes and changes[attr] is None:
            raise ValidationError(f"{label} cannot be cleared", field=label)

    try:
        repo = PaymentRepository(db)
        record = repo.get_by_id(payment_id)
        if record is None:
            raise NotFoundError("Payment", payment_id)

        current = payment_to_domain(record)
        updated = replace(current, **changes)
        validate_payment_split(updated.amount_total, updated.principal_amount, updated.late_fee_amount)

        for attr in TRACKED_FIELDS[EntityType.PAYMENT]:
            log_field_change(
                db, EntityType.PAYMENT, payment_id, attr,
                getattr(current, attr), getattr(updated, attr), actor, reason,
            )

        repo.update(record, changes)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return payment_to_domain(record)
