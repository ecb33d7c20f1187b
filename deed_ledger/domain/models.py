"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class OriginType(str, Enum):
    DIRECT = "DIRECT"
    ASSUMED = "ASSUMED"


class SaleType(str, Enum):
    CFD = "CFD"
    CASH = "CASH"


class ContractStatus(str, Enum):
    ACTIVE = "Active"
    PAID_OFF = "PaidOff"
    DEFAULT = "Default"
    REPOSSESSED = "Repossessed"


class DeedStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    NOT_RECORDED = "NOT_RECORDED"
    RECORDED = "RECORDED"


class ReceivedBy(str, Enum):
    GT_REAL_BANK = "GT_REAL_BANK"
    LEGACY_GT = "LEGACY_G&T"
    PERSONAL = "PERSONAL"
    UNKNOWN = "UNKNOWN"


class Channel(str, Enum):
    ZELLE = "ZELLE"
    ACH = "ACH"
    CASH = "CASH"
    CHECK = "CHECK"
    WIRE = "WIRE"
    OTHER = "OTHER"


class InstallmentType(str, Enum):
    REGULAR = "REGULAR"
    BALLOON = "BALLOON"
    DOWN_PAYMENT = "DOWN_PAYMENT"


class InstallmentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    PARTIAL = "PARTIAL"


class EntityType(str, Enum):
    CONTRACT = "CONTRACT"
    PAYMENT = "PAYMENT"


class DocType(str, Enum):
    CONTRACT = "Contract"
    DEED = "Deed"
    TITLE = "Title"
    INSURANCE = "Insurance"
    INSPECTION = "Inspection"
    APPRAISAL = "Appraisal"
    ASSIGNMENT = "Assignment"
    NOTICE = "Notice"
    OTHER = "Other"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


@dataclass
class Contract:
    """Seller-financed land sale agreement"""

    id: Optional[int]
    property_id: str
    buyer_name: str
    origin_type: OriginType
    sale_type: SaleType
    contract_date: date
    contract_price: Decimal
    cost_basis: Decimal
    down_payment: Decimal = Decimal("0")
    county: str = ""
    state: str = ""
    status: ContractStatus = ContractStatus.ACTIVE
    transfer_date: Optional[date] = None
    close_date: Optional[date] = None
    first_installment_date: Optional[date] = None
    installment_amount: Optional[Decimal] = None
    installment_count: Optional[int] = None
    installments_paid_by_transfer: Optional[int] = None
    balloon_amount: Optional[Decimal] = None
    balloon_date: Optional[date] = None
    opening_receivable: Optional[Decimal] = None
    deed_status: DeedStatus = DeedStatus.UNKNOWN
    deed_recorded_date: Optional[date] = None
    notes: Optional[str] = None

    @property
    def is_assumed(self) -> bool:
        return self.origin_type == OriginType.ASSUMED

    @property
    def is_cash(self) -> bool:
        return self.sale_type == SaleType.CASH


@dataclass
class Payment:
    """Single cash receipt against a contract"""

    id: Optional[int]
    contract_id: int
    payment_date: date
    amount_total: Decimal
    principal_amount: Decimal
    late_fee_amount: Decimal = Decimal("0")
    received_by: ReceivedBy = ReceivedBy.UNKNOWN
    channel: Channel = Channel.OTHER
    memo: Optional[str] = None


@dataclass
class Installment:
    """Single scheduled obligation derived from a CFD contract"""

    installment_number: int
    due_date: date
    amount: Decimal
    type: InstallmentType = InstallmentType.REGULAR
    status: InstallmentStatus = InstallmentStatus.PENDING
    id: Optional[int] = None
    contract_id: Optional[int] = None
    property_id: Optional[str] = None
    paid_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    payment_id: Optional[int] = None


@dataclass
class AuditLogEntry:
    """Write-once record of a change to a tax-critical field"""

    entity_type: EntityType
    entity_id: int
    field: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by: str
    reason: str
    changed_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class DownPayment:
    """Effective down payment for a contract within a period"""

    amount: Decimal
    payment_id: Optional[int]
    date: date

    @property
    def is_synthetic(self) -> bool:
        return self.payment_id is None and self.amount > 0


@dataclass
class LedgerException:
    """Data-quality finding surfaced for remediation"""

    id: str
    contract_id: int
    property_id: str
    type: str
    severity: Severity
    message: str
    deep_link: str
    field: Optional[str] = None


@dataclass
class ImportRowFailure:
    """Row-level import rejection"""

    row: int
    message: str


@dataclass
class ImportResult:
    """Outcome of a batch contract import"""

    success: bool
    imported: int
    errors: List[ImportRowFailure] = field(default_factory=list)


@dataclass
class ReportResult:
    """Rows, totals and a suggested export filename for a period report"""

    rows: List[Dict[str, Any]]
    filename: str
    totals: Dict[str, Any] = field(default_factory=dict)
