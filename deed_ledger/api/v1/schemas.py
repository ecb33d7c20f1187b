"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from deed_ledger.domain.models import (
    Channel,
    ContractStatus,
    DeedStatus,
    DocType,
    EntityType,
    InstallmentStatus,
    InstallmentType,
    OriginType,
    ReceivedBy,
    SaleType,
    Severity,
)


class ContractCreate(BaseModel):
    """Request body for POST /v1/contracts"""

    property_id: str = Field(..., min_length=1, description='Property key, normalized to "#NN"')
    buyer_name: str = Field(..., min_length=1)
    origin_type: OriginType
    sale_type: SaleType = SaleType.CFD
    contract_date: date
    contract_price: Decimal = Field(..., ge=0)
    cost_basis: Decimal = Field(..., ge=0)
    down_payment: Decimal = Field(Decimal("0"), ge=0)
    county: str = ""
    state: str = ""
    status: ContractStatus = ContractStatus.ACTIVE
    transfer_date: Optional[date] = None
    close_date: Optional[date] = None
    first_installment_date: Optional[date] = None
    installment_amount: Optional[Decimal] = None
    installment_count: Optional[int] = Field(None, ge=0)
    installments_paid_by_transfer: Optional[int] = Field(None, ge=0)
    balloon_amount: Optional[Decimal] = None
    balloon_date: Optional[date] = None
    opening_receivable: Optional[Decimal] = None
    deed_status: DeedStatus = DeedStatus.UNKNOWN
    deed_recorded_date: Optional[date] = None
    notes: Optional[str] = None


class ContractUpdate(BaseModel):
    """Request body for PATCH /v1/contracts/{id}; only fields sent are changed"""

    reason: str = Field(..., description="Justification recorded in the audit log")
    property_id: Optional[str] = None
    buyer_name: Optional[str] = None
    origin_type: Optional[OriginType] = None
    sale_type: Optional[SaleType] = None
    contract_date: Optional[date] = None
    contract_price: Optional[Decimal] = None
    cost_basis: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    county: Optional[str] = None
    state: Optional[str] = None
    status: Optional[ContractStatus] = None
    transfer_date: Optional[date] = None
    close_date: Optional[date] = None
    first_installment_date: Optional[date] = None
    installment_amount: Optional[Decimal] = None
    installment_count: Optional[int] = None
    installments_paid_by_transfer: Optional[int] = None
    balloon_amount: Optional[Decimal] = None
    balloon_date: Optional[date] = None
    opening_receivable: Optional[Decimal] = None
    deed_status: Optional[DeedStatus] = None
    deed_recorded_date: Optional[date] = None
    notes: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"reason"})


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: str
    buyer_name: str
    origin_type: OriginType
    sale_type: SaleType
    contract_date: date
    contract_price: Decimal
    cost_basis: Decimal
    down_payment: Decimal
    county: str
    state: str
    status: ContractStatus
    transfer_date: Optional[date] = None
    close_date: Optional[date] = None
    first_installment_date: Optional[date] = None
    installment_amount: Optional[Decimal] = None
    installment_count: Optional[int] = None
    installments_paid_by_transfer: Optional[int] = None
    balloon_amount: Optional[Decimal] = None
    balloon_date: Optional[date] = None
    opening_receivable: Optional[Decimal] = None
    deed_status: DeedStatus
    deed_recorded_date: Optional[date] = None
    notes: Optional[str] = None


class AttachmentCreate(BaseModel):
    doc_type: DocType
    url: str = Field(..., min_length=1)


class PaymentCreate(BaseModel):
    """Request body for POST /v1/payments"""

    contract_id: int
    payment_date: date
    amount_total: Decimal = Field(..., ge=0)
    principal_amount: Decimal = Field(..., ge=0)
    late_fee_amount: Decimal = Field(Decimal("0"), ge=0)
    received_by: ReceivedBy = ReceivedBy.UNKNOWN
    channel: Channel = Channel.OTHER
    memo: Optional[str] = None


class PaymentUpdate(BaseModel):
    reason: str
    payment_date: Optional[date] = None
    amount_total: Optional[Decimal] = None
    principal_amount: Optional[Decimal] = None
    late_fee_amount: Optional[Decimal] = None
    received_by: Optional[ReceivedBy] = None
    channel: Optional[Channel] = None
    memo: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"reason"})


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contract_id: int
    payment_date: date
    amount_total: Decimal
    principal_amount: Decimal
    late_fee_amount: Decimal
    received_by: ReceivedBy
    channel: Channel
    memo: Optional[str] = None


class InstallmentResponse(BaseModel):
    """Single installment in a contract's schedule"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    contract_id: int
    property_id: str
    installment_number: int
    due_date: date
    amount: Decimal
    type: InstallmentType
    status: InstallmentStatus
    paid_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    payment_id: Optional[int] = None


class MarkPaidRequest(BaseModel):
    """Request body for POST /v1/installments/{id}/pay"""

    paid_amount: Decimal = Field(..., gt=0)
    paid_date: date
    late_fee_amount: Decimal = Field(Decimal("0"), ge=0)
    received_by: ReceivedBy = ReceivedBy.UNKNOWN
    channel: Channel = Channel.OTHER
    memo: Optional[str] = None


class AuditLogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: EntityType
    entity_id: int
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: str
    changed_at: Optional[datetime] = None
    reason: str


class ImportRequest(BaseModel):
    """Parsed CSV rows keyed by camelCase header"""

    rows: List[Dict[str, Any]]


class ImportRowFailureSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    message: str


class ImportResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    imported: int
    errors: List[ImportRowFailureSchema]


class LedgerExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    contract_id: int
    property_id: str
    type: str
    severity: Severity
    message: str
    field: Optional[str] = None
    deep_link: str


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    filename: str
    rows: List[Dict[str, Any]]
    totals: Dict[str, Any]
