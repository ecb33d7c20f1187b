"""Data-quality exception rules - independent checks over a contract and its payments"""

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Set

from deed_ledger.domain.calculations import receivable_balance
from deed_ledger.domain.contract_rules import PAYMENT_SPLIT_TOLERANCE
from deed_ledger.domain.models import (
    Contract,
    DeedStatus,
    DocType,
    LedgerException,
    OriginType,
    Payment,
    SaleType,
    Severity,
)
from deed_ledger.utils.money import money_text


@dataclass
class ContractSnapshot:
    """Everything a rule may look at for one contract"""

    contract: Contract
    payments: Sequence[Payment]
    doc_types: Set[str] = field(default_factory=set)

    @property
    def link(self) -> str:
        return f"/contracts/{self.contract.id}"


Rule = Callable[[ContractSnapshot], List[LedgerException]]


def _finding(
    snap: ContractSnapshot,
    suffix: str,
    type_: str,
    severity: Severity,
    message: str,
    field_name: str | None = None,
    deep_link: str | None = None,
) -> LedgerException:
    return LedgerException(
        id=f"{snap.contract.id}-{suffix}",
        contract_id=snap.contract.id,
        property_id=snap.contract.property_id,
        type=type_,
        severity=severity,
        message=message,
        field=field_name,
        deep_link=deep_link or snap.link,
    )


def check_cost_basis(snap: ContractSnapshot) -> List[LedgerException]:
    if not snap.contract.cost_basis:
        return [_finding(snap, "cost-basis", "MISSING_COST_BASIS", Severity.CRITICAL,
                         "Cost Basis is missing or zero", "costBasis")]
    return []


def check_assumed_fields(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    if contract.origin_type != OriginType.ASSUMED:
        return []
    findings = []
    if contract.transfer_date is None:
        findings.append(_finding(snap, "transfer-date", "MISSING_TRANSFER_DATE", Severity.CRITICAL,
                                 "ASSUMED contract missing Transfer Date", "transferDate"))
    if not contract.opening_receivable:
        findings.append(_finding(snap, "opening-receivable", "MISSING_OPENING_RECEIVABLE", Severity.CRITICAL,
                                 "ASSUMED contract missing Opening Receivable", "openingReceivable"))
    if contract.installments_paid_by_transfer is None:
        findings.append(_finding(snap, "paid-by-transfer", "MISSING_INSTALLMENTS_PAID_BY_TRANSFER",
                                 Severity.MEDIUM, "ASSUMED contract missing installments paid by transfer",
                                 "installmentsPaidByTransfer"))
    return findings


def check_direct_fields(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    if contract.origin_type != OriginType.DIRECT:
        return []
    if contract.transfer_date is not None or contract.opening_receivable:
        return [_finding(snap, "direct-origin-fields", "INCONSISTENT_ORIGIN_FIELDS", Severity.HIGH,
                         "DIRECT contract carries Transfer Date or Opening Receivable", "transferDate")]
    return []


def check_installment_terms(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    if contract.sale_type == SaleType.CFD and (not contract.installment_amount or not contract.installment_count):
        return [_finding(snap, "installment-terms", "MISSING_INSTALLMENT_TERMS", Severity.HIGH,
                         "CFD contract missing installment amount or count", "installmentAmount")]
    return []


def check_close_date(snap: ContractSnapshot) -> List[LedgerException]:
    if snap.contract.sale_type == SaleType.CASH and snap.contract.close_date is None:
        return [_finding(snap, "close-date", "MISSING_CLOSE_DATE", Severity.HIGH,
                         "CASH sale missing Close Date", "closeDate")]
    return []


def check_balloon_date(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    if contract.balloon_amount and contract.balloon_amount > 0 and contract.balloon_date is None:
        return [_finding(snap, "balloon-date", "BALLOON_WITHOUT_DATE", Severity.HIGH,
                         "Balloon amount set without Balloon Date", "balloonDate")]
    return []


def check_deed_date(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    if contract.deed_status == DeedStatus.RECORDED and contract.deed_recorded_date is None:
        return [_finding(snap, "deed-date", "MISSING_DEED_DATE", Severity.MEDIUM,
                         "Deed marked RECORDED without a recorded date", "deedRecordedDate")]
    return []


def check_payment_dates(snap: ContractSnapshot) -> List[LedgerException]:
    contract = snap.contract
    findings = []
    for payment in snap.payments:
        if payment.payment_date < contract.contract_date:
            findings.append(_finding(
                snap, f"payment-{payment.id}-before-contract", "PAYMENT_BEFORE_CONTRACT_DATE", Severity.HIGH,
                f"Payment {payment.id} dated {payment.payment_date.isoformat()} precedes contract date "
                f"{contract.contract_date.isoformat()}",
                "paymentDate", f"/payments/{payment.id}",
            ))
        if (
            contract.origin_type == OriginType.ASSUMED
            and contract.transfer_date is not None
            and payment.payment_date < contract.transfer_date
        ):
            findings.append(_finding(
                snap, f"payment-{payment.id}-before-transfer", "PAYMENT_BEFORE_TRANSFER_DATE", Severity.MEDIUM,
                f"Payment {payment.id} predates transfer date {contract.transfer_date.isoformat()} "
                f"and is excluded from calculations",
                "paymentDate", f"/payments/{payment.id}",
            ))
    return findings


def check_negative_receivable(snap: ContractSnapshot) -> List[LedgerException]:
    balance = receivable_balance(snap.contract, snap.payments)
    if balance < 0:
        return [_finding(snap, "negative-receivable", "NEGATIVE_RECEIVABLE", Severity.CRITICAL,
                         f"Receivable balance is negative: ${money_text(balance)}")]
    return []


def check_payment_split(snap: ContractSnapshot) -> List[LedgerException]:
    findings = []
    for payment in snap.payments:
        calculated = payment.principal_amount + payment.late_fee_amount
        if abs(calculated - payment.amount_total) > PAYMENT_SPLIT_TOLERANCE:
            findings.append(_finding(
                snap, f"payment-{payment.id}-mismatch", "PAYMENT_MISMATCH", Severity.HIGH,
                f"Payment {payment.id}: Principal (${money_text(payment.principal_amount)}) + "
                f"Late Fee (${money_text(payment.late_fee_amount)}) != Total (${money_text(payment.amount_total)})",
                "amountTotal", f"/payments/{payment.id}",
            ))
    return findings


def check_documents(snap: ContractSnapshot) -> List[LedgerException]:
    findings = []
    if DocType.CONTRACT.value not in snap.doc_types:
        findings.append(_finding(snap, "missing-contract-doc", "MISSING_DOCS", Severity.HIGH,
                                 "Missing Contract document attachment"))
    if snap.contract.origin_type == OriginType.ASSUMED:
        if DocType.ASSIGNMENT.value not in snap.doc_types:
            findings.append(_finding(snap, "missing-assignment-doc", "MISSING_DOCS", Severity.HIGH,
                                     "ASSUMED contract missing Assignment document"))
        if DocType.NOTICE.value not in snap.doc_types:
            findings.append(_finding(snap, "missing-notice-doc", "MISSING_DOCS", Severity.MEDIUM,
                                     "ASSUMED contract missing Notice document"))
    return findings


RULES: tuple[Rule, ...] = (
    check_cost_basis,
    check_assumed_fields,
    check_direct_fields,
    check_installment_terms,
    check_close_date,
    check_balloon_date,
    check_deed_date,
    check_payment_dates,
    check_negative_receivable,
    check_payment_split,
    check_documents,
)
