"""Contract lifecycle - creation, audited updates and lookups"""

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from deed_ledger.config import settings
from deed_ledger.domain.contract_rules import normalize_property_id, validate_contract_terms
from deed_ledger.domain.exceptions import NotFoundError, ValidationError
from deed_ledger.domain.installments import SCHEDULE_FIELDS, has_schedule_terms
from deed_ledger.domain.models import Channel, Contract, DocType, EntityType, Payment, ReceivedBy
from deed_ledger.domain.reports import apply_filters
from deed_ledger.infrastructure.database.repositories import (
    CONTRACT_COLUMNS,
    AttachmentRepository,
    ContractRepository,
    PaymentRepository,
    contract_to_domain,
)
from deed_ledger.services.audit import TRACKED_FIELDS, log_field_change, require_reason
from deed_ledger.services.installments import write_schedule

CASH_CLOSING_MEMO = "CASH sale - full payment at closing"

# Columns that may be changed but never cleared
REQUIRED_FIELDS = {
    "property_id": "propertyId",
    "buyer_name": "buyerName",
    "county": "county",
    "state": "state",
    "origin_type": "originType",
    "sale_type": "saleType",
    "contract_date": "contractDate",
    "contract_price": "contractPrice",
    "cost_basis": "costBasis",
    "down_payment": "downPayment",
    "status": "status",
    "deed_status": "deedStatus",
}


def add_contract(db: Session, contract: Contract) -> Contract:
    """
    Validate and stage a new contract in the caller's transaction.

    - property id normalized and unique
    - variant invariants enforced
    - CASH sale with a close date gets its full-price closing payment
    - CFD contract with schedule terms gets its installments
    """
    contract = replace(contract, property_id=normalize_property_id(contract.property_id))
    validate_contract_terms(contract)

    repo = ContractRepository(db)
    if repo.get_by_property_id(contract.property_id) is not None:
        raise ValidationError(f"Contract for property {contract.property_id} already exists", field="propertyId")

    record = repo.create(contract)
    contract = contract_to_domain(record)

    if contract.is_cash and contract.close_date is not None:
        PaymentRepository(db).create(
            Payment(
                id=None,
                contract_id=contract.id,
                payment_date=contract.close_date,
                amount_total=contract.contract_price,
                principal_amount=contract.contract_price,
                received_by=ReceivedBy.GT_REAL_BANK,
                channel=Channel.WIRE,
                memo=CASH_CLOSING_MEMO,
            ),
            contract.property_id,
        )

    if has_schedule_terms(contract):
        write_schedule(db, contract)

    return contract


def create_contract(db: Session, contract: Contract) -> Contract:
    try:
        created = add_contract(db, contract)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return created


def get_contract(db: Session, contract_id: int) -> Contract:
    record = ContractRepository(db).get_by_id(contract_id)
    if record is None:
        raise NotFoundError("Contract", contract_id)
    return contract_to_domain(record)


def list_contracts(db: Session, filters: Optional[Mapping[str, Any]] = None) -> List[Contract]:
    contracts = [contract_to_domain(r) for r in ContractRepository(db).list_all()]
    return apply_filters(contracts, filters)


def update_contract(
    db: Session,
    contract_id: int,
    changes: Dict[str, Any],
    actor: Optional[str] = None,
    reason: Optional[str] = None,
) -> Contract:
    """
    Apply field changes to a contract.

    The reason is checked before anything is read or written. Changes to
    tracked fields are audited; changes to schedule terms regenerate the
    installment schedule. Everything commits together or not at all.

    Raises:
        AuditReasonRequiredError: reason is blank
        NotFoundError: contract does not exist
        ValidationError: unknown field, duplicate property id or broken invariant
    """
    reason = require_reason(reason)
    actor = actor or settings.default_actor

    unknown = sorted(set(changes) - set(CONTRACT_COLUMNS))
    if unknown:
        raise ValidationError(f"Unknown contract field(s): {', '.join(unknown)}")

    for attr, label in REQUIRED_FIELDS.items():
        if attr in changes and changes[attr] is None:
            raise ValidationError(f"{label} cannot be cleared", field=label)

    try:
        repo = ContractRepository(db)
        record = repo.get_by_id(contract_id)
        if record is None:
            raise NotFoundError("Contract", contract_id)

        current = contract_to_domain(record)
        changes = dict(changes)
        if "property_id" in changes:
            changes["property_id"] = normalize_property_id(changes["property_id"])
            existing = repo.get_by_property_id(changes["property_id"])
            if existing is not None and existing.id != contract_id:
                raise ValidationError(
                    f"Contract for property {changes['property_id']} already exists", field="propertyId"
                )

        updated = replace(current, **changes)
        validate_contract_terms(updated)

        for attr in TRACKED_FIELDS[EntityType.CONTRACT]:
            log_field_change(
                db, EntityType.CONTRACT, contract_id, attr,
                getattr(current, attr), getattr(updated, attr), actor, reason,
            )

        repo.update(record, changes)

        if any(getattr(current, f) != getattr(updated, f) for f in SCHEDULE_FIELDS):
            write_schedule(db, updated)

        db.commit()
    except Exception:
        db.rollback()
        raise

    return contract_to_domain(record)


def add_attachment(db: Session, contract_id: int, doc_type: DocType, url: str) -> None:
    """Register a supporting document; only its type feeds data-quality checks"""
    try:
        if ContractRepository(db).get_by_id(contract_id) is None:
            raise NotFoundError("Contract", contract_id)
        AttachmentRepository(db).add(contract_id, doc_type, url)
        db.commit()
    except Exception:
        db.rollback()
        raise
