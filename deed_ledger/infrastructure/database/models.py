"""SQLAlchemy ORM models for the contract ledger"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(15, 2)


class ContractRecord(Base):
    """Contract for Deed / cash land sale"""

    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(String(50), nullable=False, unique=True, index=True)
    buyer_name = Column(String(255), nullable=False)
    county = Column(String(100), nullable=False, default="")
    state = Column(String(50), nullable=False, default="")
    origin_type = Column(String(10), nullable=False)
    sale_type = Column(String(10), nullable=False, default="CFD")
    contract_date = Column(Date, nullable=False)
    transfer_date = Column(Date, nullable=True)  # ASSUMED only
    close_date = Column(Date, nullable=True)  # CASH only
    first_installment_date = Column(Date, nullable=True)
    contract_price = Column(MONEY, nullable=False)
    cost_basis = Column(MONEY, nullable=False)
    down_payment = Column(MONEY, nullable=False, default=0)
    installment_amount = Column(MONEY, nullable=True)
    installment_count = Column(Integer, nullable=True)
    installments_paid_by_transfer = Column(Integer, nullable=True)
    balloon_amount = Column(MONEY, nullable=True)
    balloon_date = Column(Date, nullable=True)
    opening_receivable = Column(MONEY, nullable=True)  # ASSUMED only, as of transfer date
    status = Column(String(20), nullable=False, default="Active")
    deed_status = Column(String(20), nullable=False, default="UNKNOWN")
    deed_recorded_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    payments = relationship("PaymentRecord", back_populates="contract", cascade="all, delete-orphan")
    installments = relationship("InstallmentRecord", back_populates="contract", cascade="all, delete-orphan")
    attachments = relationship("ContractAttachmentRecord", back_populates="contract", cascade="all, delete-orphan")


class PaymentRecord(Base):
    """Cash receipt against a contract"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(50), nullable=False)  # Denormalized for quick lookup
    payment_date = Column(Date, nullable=False, index=True)
    amount_total = Column(MONEY, nullable=False)
    principal_amount = Column(MONEY, nullable=False)
    late_fee_amount = Column(MONEY, nullable=False, default=0)
    received_by = Column(String(20), nullable=False, default="UNKNOWN")
    channel = Column(String(10), nullable=False, default="OTHER")
    memo = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    contract = relationship("ContractRecord", back_populates="payments")


class InstallmentRecord(Base):
    """Scheduled obligation derived from contract terms (regenerated, never edited by hand)"""

    __tablename__ = "installments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(50), nullable=False)
    installment_number = Column(Integer, nullable=False)  # 0 = balloon
    due_date = Column(Date, nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    type = Column(String(20), nullable=False, default="REGULAR")
    status = Column(String(10), nullable=False, default="PENDING")
    paid_date = Column(Date, nullable=True)
    paid_amount = Column(MONEY, nullable=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRecord", back_populates="installments")


class AuditLogRecord(Base):
    """Append-only log of tax-critical field changes"""

    __tablename__ = "tax_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(10), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    field = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_by = Column(String(255), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    reason = Column(Text, nullable=False)


class ContractAttachmentRecord(Base):
    """Document attached to a contract (file storage lives elsewhere)"""

    __tablename__ = "contract_attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    doc_type = Column(String(20), nullable=False)
    url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRecord", back_populates="attachments")
