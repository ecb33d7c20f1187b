"""Unit tests for data-quality exception rules"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from deed_ledger.domain.data_quality import (
    ContractSnapshot,
    check_assumed_fields,
    check_cost_basis,
    check_deed_date,
    check_direct_fields,
    check_documents,
    check_negative_receivable,
    check_payment_dates,
    check_payment_split,
)
from deed_ledger.domain.models import DeedStatus, DocType, Payment, Severity


def _types(findings):
    return [f.type for f in findings]


def test_missing_cost_basis_is_critical(direct_contract):
    findings = check_cost_basis(ContractSnapshot(replace(direct_contract, cost_basis=Decimal("0")), []))

    assert _types(findings) == ["MISSING_COST_BASIS"]
    assert findings[0].severity == Severity.CRITICAL
    assert findings[0].deep_link == "/contracts/1"
    assert findings[0].id == "1-cost-basis"


def test_assumed_missing_fields(assumed_contract):
    contract = replace(
        assumed_contract, transfer_date=None, opening_receivable=None, installments_paid_by_transfer=None
    )
    findings = check_assumed_fields(ContractSnapshot(contract, []))

    assert _types(findings) == [
        "MISSING_TRANSFER_DATE",
        "MISSING_OPENING_RECEIVABLE",
        "MISSING_INSTALLMENTS_PAID_BY_TRANSFER",
    ]
    assert [f.severity for f in findings] == [Severity.CRITICAL, Severity.CRITICAL, Severity.MEDIUM]


def test_direct_with_assumed_fields(direct_contract):
    contract = replace(direct_contract, transfer_date=date(2024, 3, 1))
    assert _types(check_direct_fields(ContractSnapshot(contract, []))) == ["INCONSISTENT_ORIGIN_FIELDS"]


def test_recorded_deed_without_date(direct_contract):
    contract = replace(direct_contract, deed_status=DeedStatus.RECORDED)
    findings = check_deed_date(ContractSnapshot(contract, []))
    assert _types(findings) == ["MISSING_DEED_DATE"]
    assert findings[0].severity == Severity.MEDIUM


def test_payment_dates(assumed_contract, assumed_payments):
    early = Payment(
        id=9,
        contract_id=2,
        payment_date=date(2023, 1, 1),
        amount_total=Decimal("100"),
        principal_amount=Decimal("100"),
    )
    findings = check_payment_dates(ContractSnapshot(assumed_contract, assumed_payments + [early]))

    assert sorted(_types(findings)) == [
        "PAYMENT_BEFORE_CONTRACT_DATE",
        "PAYMENT_BEFORE_TRANSFER_DATE",
        "PAYMENT_BEFORE_TRANSFER_DATE",
    ]
    links = {(f.type, f.deep_link) for f in findings}
    assert ("PAYMENT_BEFORE_TRANSFER_DATE", "/payments/10") in links
    assert ("PAYMENT_BEFORE_CONTRACT_DATE", "/payments/9") in links


def test_payment_before_both_dates_reports_both(assumed_contract):
    """Test a payment preceding contract and transfer dates raises both findings"""
    early = Payment(
        id=9,
        contract_id=2,
        payment_date=date(2023, 1, 1),
        amount_total=Decimal("100"),
        principal_amount=Decimal("100"),
    )
    findings = check_payment_dates(ContractSnapshot(assumed_contract, [early]))

    assert sorted(_types(findings)) == ["PAYMENT_BEFORE_CONTRACT_DATE", "PAYMENT_BEFORE_TRANSFER_DATE"]
    assert {f.deep_link for f in findings} == {"/payments/9"}


def test_negative_receivable(direct_contract):
    overpaid = Payment(
        id=5,
        contract_id=1,
        payment_date=date(2024, 2, 1),
        amount_total=Decimal("17000"),
        principal_amount=Decimal("17000"),
    )
    findings = check_negative_receivable(ContractSnapshot(direct_contract, [overpaid]))

    assert _types(findings) == ["NEGATIVE_RECEIVABLE"]
    assert "-1000.00" in findings[0].message


def test_payment_split_mismatch(direct_contract):
    bad = Payment(
        id=6,
        contract_id=1,
        payment_date=date(2024, 2, 15),
        amount_total=Decimal("600"),
        principal_amount=Decimal("500"),
        late_fee_amount=Decimal("25"),
    )
    findings = check_payment_split(ContractSnapshot(direct_contract, [bad]))

    assert _types(findings) == ["PAYMENT_MISMATCH"]
    assert findings[0].id == "1-payment-6-mismatch"
    assert findings[0].deep_link == "/payments/6"


def test_documents_required(direct_contract, assumed_contract):
    assert _types(check_documents(ContractSnapshot(direct_contract, []))) == ["MISSING_DOCS"]
    assert check_documents(ContractSnapshot(direct_contract, [], {DocType.CONTRACT.value})) == []

    findings = check_documents(ContractSnapshot(assumed_contract, [], {DocType.CONTRACT.value}))
    assert [f.severity for f in findings] == [Severity.HIGH, Severity.MEDIUM]
    assert "Assignment" in findings[0].message
    assert "Notice" in findings[1].message
