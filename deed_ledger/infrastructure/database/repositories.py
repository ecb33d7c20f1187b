"""Data access layer for ledger entities"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from deed_ledger.domain.contract_rules import normalize_property_id
from deed_ledger.domain.models import (
    AuditLogEntry,
    Channel,
    Contract,
    ContractStatus,
    DeedStatus,
    EntityType,
    Installment,
    InstallmentStatus,
    InstallmentType,
    OriginType,
    Payment,
    ReceivedBy,
    SaleType,
)
from deed_ledger.infrastructure.database.models import (
    AuditLogRecord,
    ContractAttachmentRecord,
    ContractRecord,
    InstallmentRecord,
    PaymentRecord,
)

CONTRACT_COLUMNS = (
    "property_id", "buyer_name", "county", "state", "origin_type", "sale_type", "contract_date",
    "transfer_date", "close_date", "first_installment_date", "contract_price", "cost_basis",
    "down_payment", "installment_amount", "installment_count", "installments_paid_by_transfer",
    "balloon_amount", "balloon_date", "opening_receivable", "status", "deed_status",
    "deed_recorded_date", "notes",
)

PAYMENT_COLUMNS = (
    "payment_date", "amount_total", "principal_amount", "late_fee_amount", "received_by", "channel", "memo",
)


def _column_value(value: Any) -> Any:
    """Enums are stored by value"""
    return value.value if hasattr(value, "value") else value


def contract_to_domain(record: ContractRecord) -> Contract:
    return Contract(
        id=record.id,
        property_id=record.property_id,
        buyer_name=record.buyer_name,
        county=record.county or "",
        state=record.state or "",
        origin_type=OriginType(record.origin_type),
        sale_type=SaleType(record.sale_type),
        contract_date=record.contract_date,
        transfer_date=record.transfer_date,
        close_date=record.close_date,
        first_installment_date=record.first_installment_date,
        contract_price=record.contract_price,
        cost_basis=record.cost_basis,
        down_payment=record.down_payment,
        installment_amount=record.installment_amount,
        installment_count=record.installment_count,
        installments_paid_by_transfer=record.installments_paid_by_transfer,
        balloon_amount=record.balloon_amount,
        balloon_date=record.balloon_date,
        opening_receivable=record.opening_receivable,
        status=ContractStatus(record.status),
        deed_status=DeedStatus(record.deed_status or DeedStatus.UNKNOWN.value),
        deed_recorded_date=record.deed_recorded_date,
        notes=record.notes,
    )


def payment_to_domain(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        contract_id=record.contract_id,
        payment_date=record.payment_date,
        amount_total=record.amount_total,
        principal_amount=record.principal_amount,
        late_fee_amount=record.late_fee_amount,
        received_by=ReceivedBy(record.received_by),
        channel=Channel(record.channel),
        memo=record.memo,
    )


def installment_to_domain(record: InstallmentRecord) -> Installment:
    return Installment(
        id=record.id,
        contract_id=record.contract_id,
        property_id=record.property_id,
        installment_number=record.installment_number,
        due_date=record.due_date,
        amount=record.amount,
        type=InstallmentType(record.type),
        status=InstallmentStatus(record.status),
        paid_date=record.paid_date,
        paid_amount=record.paid_amount,
        payment_id=record.payment_id,
    )


def audit_to_domain(record: AuditLogRecord) -> AuditLogEntry:
    return AuditLogEntry(
        id=record.id,
        entity_type=EntityType(record.entity_type),
        entity_id=record.entity_id,
        field=record.field,
        old_value=record.old_value,
        new_value=record.new_value,
        changed_by=record.changed_by,
        changed_at=record.changed_at,
        reason=record.reason,
    )


class ContractRepository:
    """Repository for contracts"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, contract_id: int) -> Optional[ContractRecord]:
        return self.db.query(ContractRecord).filter(ContractRecord.id == contract_id).first()

    def get_by_property_id(self, property_id: str) -> Optional[ContractRecord]:
        """Lookup by canonical key, so "33", "#33" and "Property 33" all match"""
        key = normalize_property_id(property_id)
        if not key:
            return None
        return self.db.query(ContractRecord).filter(ContractRecord.property_id == key).first()

    def list_all(self) -> List[ContractRecord]:
        return self.db.query(ContractRecord).order_by(ContractRecord.property_id).all()

    def create(self, contract: Contract) -> ContractRecord:
        """Persist a validated contract"""
        record = ContractRecord(**{col: _column_value(getattr(contract, col)) for col in CONTRACT_COLUMNS})
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def update(self, record: ContractRecord, changes: Dict[str, Any]) -> ContractRecord:
        for column, value in changes.items():
            if column in CONTRACT_COLUMNS:
                setattr(record, column, _column_value(value))
        if "property_id" in changes:
            # Payments and installments carry a denormalized copy of the key
            for child in (PaymentRecord, InstallmentRecord):
                self.db.query(child).filter(child.contract_id == record.id).update(
                    {child.property_id: record.property_id}, synchronize_session="fetch"
                )
        self.db.flush()
        return record


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: int) -> Optional[PaymentRecord]:
        return self.db.query(PaymentRecord).filter(PaymentRecord.id == payment_id).first()

    def list_by_contract(self, contract_id: int) -> List[PaymentRecord]:
        return (
            self.db.query(PaymentRecord)
            .filter(PaymentRecord.contract_id == contract_id)
            .order_by(PaymentRecord.payment_date, PaymentRecord.id)
            .all()
        )

    def list_all(self) -> List[PaymentRecord]:
        return self.db.query(PaymentRecord).order_by(PaymentRecord.payment_date, PaymentRecord.id).all()

    def create(self, payment: Payment, property_id: str) -> PaymentRecord:
        record = PaymentRecord(
            contract_id=payment.contract_id,
            property_id=property_id,
            **{col: _column_value(getattr(payment, col)) for col in PAYMENT_COLUMNS},
        )
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record: PaymentRecord, changes: Dict[str, Any]) -> PaymentRecord:
        for column, value in changes.items():
            if column in PAYMENT_COLUMNS:
                setattr(record, column, _column_value(value))
        self.db.flush()
        return record


class InstallmentRepository:
    """Repository for the derived installment schedule"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, installment_id: int) -> Optional[InstallmentRecord]:
        return self.db.query(InstallmentRecord).filter(InstallmentRecord.id == installment_id).first()

    def replace_for_contract(self, contract_id: int, installments: Iterable[Installment]) -> List[InstallmentRecord]:
        """Delete the contract's schedule and insert the new one (caller owns the transaction)"""
        self.db.query(InstallmentRecord).filter(InstallmentRecord.contract_id == contract_id).delete()
        records = []
        for inst in installments:
            record = InstallmentRecord(
                contract_id=contract_id,
                property_id=inst.property_id,
                installment_number=inst.installment_number,
                due_date=inst.due_date,
                amount=inst.amount,
                type=inst.type.value,
                status=inst.status.value,
            )
            self.db.add(record)
            records.append(record)
        self.db.flush()
        return records

    def list(
        self,
        contract_id: Optional[int] = None,
        property_id: Optional[str] = None,
        status: Optional[InstallmentStatus] = None,
        statuses: Optional[Iterable[InstallmentStatus]] = None,
    ) -> List[InstallmentRecord]:
        query = self.db.query(InstallmentRecord)
        if contract_id is not None:
            query = query.filter(InstallmentRecord.contract_id == contract_id)
        if property_id:
            query = query.filter(InstallmentRecord.property_id == normalize_property_id(property_id))
        if status is not None:
            query = query.filter(InstallmentRecord.status == _column_value(status))
        if statuses is not None:
            query = query.filter(InstallmentRecord.status.in_([_column_value(s) for s in statuses]))
        return query.order_by(
            InstallmentRecord.due_date, InstallmentRecord.contract_id, InstallmentRecord.installment_number
        ).all()

    def mark_overdue(self, today: date) -> int:
        """Flip PENDING rows due before today to OVERDUE; returns rows changed"""
        count = (
            self.db.query(InstallmentRecord)
            .filter(
                and_(
                    InstallmentRecord.status == InstallmentStatus.PENDING.value,
                    InstallmentRecord.due_date < today,
                )
            )
            .update({InstallmentRecord.status: InstallmentStatus.OVERDUE.value})
        )
        self.db.flush()
        return count


class AuditLogRepository:
    """Append-only repository for the tax audit log"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: AuditLogEntry) -> AuditLogRecord:
        record = AuditLogRecord(
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            field=entry.field,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=entry.changed_by,
            reason=entry.reason,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def list_for_entities(self, contract_ids: Iterable[int] = (), payment_ids: Iterable[int] = ()) -> List[AuditLogRecord]:
        contract_ids, payment_ids = list(contract_ids), list(payment_ids)
        clauses = []
        if contract_ids:
            clauses.append(and_(AuditLogRecord.entity_type == EntityType.CONTRACT.value,
                                AuditLogRecord.entity_id.in_(contract_ids)))
        if payment_ids:
            clauses.append(and_(AuditLogRecord.entity_type == EntityType.PAYMENT.value,
                                AuditLogRecord.entity_id.in_(payment_ids)))
        if not clauses:
            return []
        return (
            self.db.query(AuditLogRecord)
            .filter(or_(*clauses))
            .order_by(AuditLogRecord.changed_at, AuditLogRecord.id)
            .all()
        )


class AttachmentRepository:
    """Repository for contract document attachments"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, contract_id: int, doc_type: str, url: str) -> ContractAttachmentRecord:
        record = ContractAttachmentRecord(contract_id=contract_id, doc_type=_column_value(doc_type), url=url)
        self.db.add(record)
        self.db.flush()
        return record

    def doc_types_for_contract(self, contract_id: int) -> Set[str]:
        rows = (
            self.db.query(ContractAttachmentRecord.doc_type)
            .filter(ContractAttachmentRecord.contract_id == contract_id)
            .all()
        )
        return {row[0] for row in rows}
