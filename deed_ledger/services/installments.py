"""Installment schedule regeneration, overdue refresh and payment application"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from deed_ledger.domain.contract_rules import validate_payment_split
from deed_ledger.domain.exceptions import NotFoundError, ValidationError
from deed_ledger.domain.installments import build_installment_schedule, settled_status
from deed_ledger.domain.models import (
    Channel,
    Contract,
    Installment,
    InstallmentStatus,
    InstallmentType,
    Payment,
    ReceivedBy,
)
from deed_ledger.infrastructure.database.repositories import (
    ContractRepository,
    InstallmentRepository,
    PaymentRepository,
    contract_to_domain,
    installment_to_domain,
)
from deed_ledger.infrastructure.observability.logging import log_schedule_regenerated
from deed_ledger.infrastructure.observability.metrics import (
    installments_generated_counter,
    installments_marked_overdue_counter,
)

SETTLED_STATUSES = (InstallmentStatus.PAID, InstallmentStatus.PARTIAL)


def write_schedule(db: Session, contract: Contract) -> List[Installment]:
    """Replace the contract's schedule within the caller's transaction"""
    schedule = build_installment_schedule(contract)
    records = InstallmentRepository(db).replace_for_contract(contract.id, schedule)

    installments_generated_counter.inc(len(records))
    log_schedule_regenerated(contract.id, contract.property_id, len(records))
    return [installment_to_domain(r) for r in records]


def regenerate_installments(db: Session, contract_id: int) -> List[Installment]:
    """
    Rebuild a contract's installment schedule from its current terms.

    Delete and insert run in one transaction: a failure rolls back to the
    previous schedule. Running it twice with unchanged terms yields the same rows.
    """
    try:
        record = ContractRepository(db).get_by_id(contract_id)
        if record is None:
            raise NotFoundError("Contract", contract_id)
        installments = write_schedule(db, contract_to_domain(record))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return installments


def refresh_overdue(db: Session, today: Optional[date] = None) -> int:
    """Move PENDING installments past due to OVERDUE; returns how many changed"""
    today = today or date.today()
    try:
        changed = InstallmentRepository(db).mark_overdue(today)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if changed:
        installments_marked_overdue_counter.inc(changed)
        logging.info("Installments marked overdue", extra={"count": changed, "as_of": today.isoformat()})
    return changed


def list_installments(
    db: Session,
    property_id: Optional[str] = None,
    status: Optional[InstallmentStatus] = None,
    today: Optional[date] = None,
) -> List[Installment]:
    refresh_overdue(db, today)
    records = InstallmentRepository(db).list(property_id=property_id, status=status)
    return [installment_to_domain(r) for r in records]


def list_overdue(db: Session, today: Optional[date] = None) -> List[Installment]:
    return list_installments(db, status=InstallmentStatus.OVERDUE, today=today)


def mark_installment_paid(
    db: Session,
    installment_id: int,
    paid_amount: Decimal,
    paid_date: date,
    received_by: ReceivedBy = ReceivedBy.UNKNOWN,
    channel: Channel = Channel.OTHER,
    memo: Optional[str] = None,
    late_fee_amount: Decimal = Decimal("0"),
) -> Installment:
    """
    Record a payment against an installment.

    Creates the linked Payment (principal = paid_amount) and settles the
    installment as PAID when paid_amount covers it, PARTIAL otherwise.
    Installments already PAID or PARTIAL are rejected.
    """
    try:
        repo = InstallmentRepository(db)
        record = repo.get_by_id(installment_id)
        if record is None:
            raise NotFoundError("Installment", installment_id)

        current_status = InstallmentStatus(record.status)
        if current_status in SETTLED_STATUSES:
            raise ValidationError(
                f"Installment {installment_id} is already {current_status.value}", field="status"
            )
        if paid_amount <= 0:
            raise ValidationError("Paid amount must be positive", field="paidAmount")

        amount_total = paid_amount + late_fee_amount
        validate_payment_split(amount_total, paid_amount, late_fee_amount)

        if memo is None:
            memo = (
                "Balloon payment"
                if record.type == InstallmentType.BALLOON.value
                else f"Installment #{record.installment_number}"
            )

        payment = Payment(
            id=None,
            contract_id=record.contract_id,
            payment_date=paid_date,
            amount_total=amount_total,
            principal_amount=paid_amount,
            late_fee_amount=late_fee_amount,
            received_by=received_by,
            channel=channel,
            memo=memo,
        )
        payment_record = PaymentRepository(db).create(payment, record.property_id)

        record.paid_date = paid_date
        record.paid_amount = paid_amount
        record.payment_id = payment_record.id
        record.status = settled_status(record.amount, paid_amount).value
        db.flush()
        db.commit()
    except Exception:
        db.rollback()
        raise

    return installment_to_domain(record)
