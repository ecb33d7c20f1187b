"""Integration tests for ledger services against the test database"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from deed_ledger.domain.exceptions import AuditReasonRequiredError, NotFoundError, ValidationError
from deed_ledger.domain.models import DocType, EntityType, InstallmentStatus, Payment
from deed_ledger.infrastructure.database.repositories import AuditLogRepository, PaymentRepository
from deed_ledger.services.audit import get_audit_log_for_contract, get_audit_log_for_payment
from deed_ledger.services.contracts import add_attachment, create_contract, get_contract, update_contract
from deed_ledger.services.data_quality import validate_all_contracts
from deed_ledger.services.imports import import_contracts, import_contracts_csv
from deed_ledger.services.installments import (
    list_installments,
    list_overdue,
    mark_installment_paid,
    refresh_overdue,
    regenerate_installments,
)
from deed_ledger.services.payments import create_payment, list_payments, update_payment
from deed_ledger.services.reports import (
    get_cash_flow_projection,
    get_contract_summary,
    get_subledger,
    get_tax_schedule,
)


def _record_payments(db: Session, contract_id: int, payments):
    return [create_payment(db, replace(p, id=None, contract_id=contract_id)) for p in payments]


def _schedule_rows(installments):
    return [(i.installment_number, i.due_date, i.amount, i.type, i.status) for i in installments]


def test_create_contract_normalizes_and_generates_schedule(db: Session, direct_contract):
    contract = create_contract(db, replace(direct_contract, property_id="Property 12"))

    assert contract.id is not None
    assert contract.property_id == "#12"
    installments = list_installments(db, property_id="12", today=date(2024, 1, 1))
    assert len(installments) == 32
    assert all(i.contract_id == contract.id for i in installments)


def test_create_contract_rejects_duplicate_property(db: Session, direct_contract):
    create_contract(db, direct_contract)

    with pytest.raises(ValidationError) as exc_info:
        create_contract(db, replace(direct_contract, property_id="#12 "))
    assert exc_info.value.field == "propertyId"


def test_create_contract_rejects_invalid_variant(db: Session, direct_contract):
    with pytest.raises(ValidationError):
        create_contract(db, replace(direct_contract, opening_receivable=Decimal("500")))


def test_cash_sale_records_closing_payment(db: Session, cash_contract):
    contract = create_contract(db, cash_contract)
    payments = list_payments(db, contract.id)

    assert len(payments) == 1
    assert payments[0].principal_amount == Decimal("9000")
    assert payments[0].payment_date == date(2024, 4, 20)
    assert get_contract_summary(db, contract.id)["receivable_balance"] == Decimal("0.00")


def test_down_payment_update_flows_into_balance_and_audit_log(db: Session, direct_contract):
    """Test 16000 owed, then 15000 once the down payment is corrected to 5000"""
    contract = create_contract(db, direct_contract)
    assert get_contract_summary(db, contract.id)["receivable_balance"] == Decimal("16000.00")

    updated = update_contract(
        db, contract.id, {"down_payment": Decimal("5000")}, actor="controller", reason="Signed closing statement"
    )

    assert updated.down_payment == Decimal("5000")
    assert get_contract_summary(db, contract.id)["receivable_balance"] == Decimal("15000.00")

    entries = get_audit_log_for_contract(db, contract.id)
    assert len(entries) == 1
    assert entries[0].field == "downPayment"
    assert entries[0].old_value == "4000.00"
    assert entries[0].new_value == "5000.00"
    assert entries[0].changed_by == "controller"
    assert entries[0].reason == "Signed closing statement"


def test_assumed_down_payment_update_persists_as_entered(db: Session, assumed_contract):
    contract = create_contract(db, assumed_contract)
    updated = update_contract(db, contract.id, {"down_payment": Decimal("2500")}, reason="Per assignment file")

    assert updated.down_payment == Decimal("2500")
    assert get_contract_summary(db, contract.id)["receivable_balance"] == Decimal("10000.00")


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_update_contract_requires_reason(db: Session, direct_contract, reason):
    contract = create_contract(db, direct_contract)

    with pytest.raises(AuditReasonRequiredError):
        update_contract(db, contract.id, {"cost_basis": Decimal("1")}, reason=reason)

    assert get_contract(db, contract.id).cost_basis == Decimal("12000")
    assert AuditLogRepository(db).list_for_entities(contract_ids=[contract.id]) == []


def test_update_contract_unchanged_value_not_audited(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)
    update_contract(db, contract.id, {"contract_price": Decimal("20000.00"), "notes": "x"}, reason="touch")

    assert get_audit_log_for_contract(db, contract.id) == []


def test_update_contract_missing(db: Session):
    with pytest.raises(NotFoundError):
        update_contract(db, 999, {"notes": "x"}, reason="cleanup")


def test_update_contract_invalid_rolls_back(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)

    with pytest.raises(ValidationError):
        update_contract(db, contract.id, {"transfer_date": date(2024, 3, 1)}, reason="typo")
    assert get_contract(db, contract.id).transfer_date is None


@pytest.mark.parametrize("field", ["down_payment", "buyer_name", "contract_date", "deed_status"])
def test_update_contract_rejects_clearing_required_field(db: Session, direct_contract, field):
    contract = create_contract(db, direct_contract)

    with pytest.raises(ValidationError) as exc_info:
        update_contract(db, contract.id, {field: None}, reason="cleanup")
    assert exc_info.value.field is not None
    assert get_contract(db, contract.id).down_payment == Decimal("4000")
    assert get_audit_log_for_contract(db, contract.id) == []


def test_property_id_change_moves_schedule_and_payments(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)
    payment = create_payment(
        db,
        Payment(
            id=None,
            contract_id=contract.id,
            payment_date=date(2024, 2, 15),
            amount_total=Decimal("500"),
            principal_amount=Decimal("500"),
        ),
    )

    update_contract(db, contract.id, {"property_id": "99"}, reason="Plat renumbered")

    assert len(list_installments(db, property_id="#99", today=date(2024, 1, 1))) == 32
    assert list_installments(db, property_id="#12", today=date(2024, 1, 1)) == []
    assert PaymentRepository(db).get_by_id(payment.id).property_id == "#99"


def test_assumed_example_figures(db: Session, assumed_contract, assumed_payments):
    """Test 7500 balance, 1166.67 gain and 25 late fees for 2024"""
    contract = create_contract(db, assumed_contract)
    _record_payments(db, contract.id, assumed_payments)

    summary = get_contract_summary(db, contract.id, year=2024)
    assert summary["receivable_balance"] == Decimal("7500.00")
    assert summary["gain_recognized_year"] == Decimal("1166.67")
    assert summary["late_fees_year"] == Decimal("25.00")

    row = get_tax_schedule(db, 2024).rows[0]
    assert row["principal_received"] == Decimal("2500.00")


def test_create_payment_validates_split(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)
    bad = Payment(
        id=None,
        contract_id=contract.id,
        payment_date=date(2024, 2, 15),
        amount_total=Decimal("600"),
        principal_amount=Decimal("500"),
        late_fee_amount=Decimal("25"),
    )

    with pytest.raises(ValidationError):
        create_payment(db, bad)
    assert list_payments(db, contract.id) == []


def test_create_payment_unknown_contract(db: Session, assumed_payments):
    with pytest.raises(NotFoundError):
        create_payment(db, replace(assumed_payments[0], id=None, contract_id=404))


def test_update_payment_is_audited_under_contract(db: Session, assumed_contract, assumed_payments):
    contract = create_contract(db, assumed_contract)
    payments = _record_payments(db, contract.id, assumed_payments)
    target = payments[1]

    update_payment(
        db,
        target.id,
        {"amount_total": Decimal("1010"), "late_fee_amount": Decimal("10")},
        actor="bookkeeper",
        reason="Late fee missed at entry",
    )

    payment_entries = get_audit_log_for_payment(db, target.id)
    assert {e.field for e in payment_entries} == {"amountTotal", "lateFeeAmount"}
    assert all(e.entity_type == EntityType.PAYMENT for e in payment_entries)
    assert len(get_audit_log_for_contract(db, contract.id)) == 2


def test_update_payment_requires_reason(db: Session, assumed_contract, assumed_payments):
    contract = create_contract(db, assumed_contract)
    payment = _record_payments(db, contract.id, assumed_payments[:1])[0]

    with pytest.raises(AuditReasonRequiredError):
        update_payment(db, payment.id, {"payment_date": date(2024, 6, 2)}, reason="")


def test_update_payment_rejects_clearing_amount(db: Session, assumed_contract, assumed_payments):
    contract = create_contract(db, assumed_contract)
    payment = _record_payments(db, contract.id, assumed_payments[:1])[0]

    with pytest.raises(ValidationError) as exc_info:
        update_payment(db, payment.id, {"principal_amount": None}, reason="typo")
    assert exc_info.value.field == "principalAmount"


def test_regeneration_is_idempotent(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)

    first = regenerate_installments(db, contract.id)
    second = regenerate_installments(db, contract.id)

    assert len(first) == 32
    assert _schedule_rows(first) == _schedule_rows(second)
    assert len(list_installments(db, today=date(2024, 1, 1))) == 32


def test_schedule_term_change_regenerates(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)
    update_contract(
        db,
        contract.id,
        {"installment_count": 10, "balloon_amount": Decimal("11000"), "balloon_date": date(2025, 1, 15)},
        reason="Restructured terms",
    )

    installments = list_installments(db, today=date(2024, 1, 1))
    assert len(installments) == 11
    assert installments[-1].amount == Decimal("11000")


def test_regenerate_missing_contract(db: Session):
    with pytest.raises(NotFoundError):
        regenerate_installments(db, 12345)


def test_refresh_overdue(db: Session, direct_contract):
    create_contract(db, direct_contract)

    changed = refresh_overdue(db, today=date(2024, 4, 1))

    assert changed == 2  # Feb 15 and Mar 15
    overdue = list_overdue(db, today=date(2024, 4, 1))
    assert [i.due_date for i in overdue] == [date(2024, 2, 15), date(2024, 3, 15)]


def test_mark_installment_paid(db: Session, direct_contract):
    contract = create_contract(db, direct_contract)
    first, second = list_installments(db, today=date(2024, 1, 1))[:2]

    paid = mark_installment_paid(db, first.id, Decimal("500"), date(2024, 2, 14))
    partial = mark_installment_paid(
        db, second.id, Decimal("200"), date(2024, 3, 20), late_fee_amount=Decimal("15")
    )

    assert paid.status == InstallmentStatus.PAID
    assert paid.payment_id is not None
    assert partial.status == InstallmentStatus.PARTIAL
    payments = list_payments(db, contract.id)
    assert [p.amount_total for p in payments] == [Decimal("500"), Decimal("215")]
    assert payments[0].memo == "Installment #1"

    with pytest.raises(ValidationError):
        mark_installment_paid(db, first.id, Decimal("500"), date(2024, 2, 15))
    with pytest.raises(ValidationError):
        mark_installment_paid(db, second.id, Decimal("300"), date(2024, 3, 25))


def test_import_keeps_valid_rows(db: Session):
    """Test 2 valid rows and 1 invalid row import 2 with one row error"""
    rows = [
        {
            "propertyId": "21", "buyerName": "Luis Ortega", "county": "Hidalgo", "state": "TX",
            "originType": "DIRECT", "saleType": "CFD", "contractDate": "2024-02-01",
            "contractPrice": "18,000.00", "costBasis": "9000", "downPayment": "2000",
            "installmentAmount": "400", "installmentCount": "40", "firstInstallmentDate": "2024-03-01",
            "status": "Active",
        },
        {
            "propertyId": "22", "buyerName": "Rosa Diaz", "originType": "ASSUMED", "saleType": "CFD",
            "contractDate": "2022-05-01", "contractPrice": "12000", "costBasis": "6000", "downPayment": "",
            "installmentAmount": "300", "installmentCount": "36", "status": "Active",
        },
        {
            "propertyId": "23", "buyerName": "Ken Wu", "originType": "DIRECT", "saleType": "CASH",
            "contractDate": "2024-03-01", "closeDate": "2024-03-15", "contractPrice": "7000",
            "costBasis": "3000", "downPayment": "0", "status": "PaidOff",
        },
    ]

    result = import_contracts(db, rows)

    assert result.imported == 2
    assert not result.success
    assert len(result.errors) == 1
    assert result.errors[0].row == 3
    assert result.errors[0].message == "ASSUMED requires transferDate"
    assert len(list_installments(db, property_id="#21", today=date(2024, 1, 1))) == 40


def test_import_rejects_duplicates_and_bad_values(db: Session, direct_contract):
    create_contract(db, direct_contract)
    content = (
        "propertyId,buyerName,originType,saleType,contractDate,contractPrice,costBasis,"
        "downPayment,installmentAmount,installmentCount\n"
        "#12,Dup Buyer,DIRECT,CFD,2024-01-01,1000,500,0,100,10\n"
        "50,Bad Date,DIRECT,CFD,01/02/2024,1000,500,0,100,10\n"
        "51,Bad Origin,RESOLD,CFD,2024-01-01,1000,500,0,100,10\n"
        "52,Bad Price,DIRECT,CFD,2024-01-01,nan,500,0,100,10\n"
        "53,Bad Date Tail,DIRECT,CFD,2024-01-01xyz,1000,500,0,100,10\n"
    )

    result = import_contracts_csv(db, content)

    assert result.imported == 0
    assert [e.row for e in result.errors] == [2, 3, 4, 5, 6]
    assert result.errors[0].message == "Duplicate propertyId #12"
    assert result.errors[1].message.startswith("Invalid contractDate")
    assert result.errors[2].message.startswith("Invalid originType")
    assert result.errors[3].message == "Invalid contractPrice: 'nan'"
    assert result.errors[4].message.startswith("Invalid contractDate")


def test_validate_all_contracts(db: Session, direct_contract):
    contract = create_contract(db, replace(direct_contract, cost_basis=Decimal("0")))

    findings = validate_all_contracts(db)
    assert [f.type for f in findings] == ["MISSING_COST_BASIS", "MISSING_DOCS"]

    add_attachment(db, contract.id, DocType.CONTRACT, "https://files.example.com/12/contract.pdf")
    assert [f.type for f in validate_all_contracts(db)] == ["MISSING_COST_BASIS"]


def test_subledger_invalid_period(db: Session):
    with pytest.raises(ValidationError):
        get_subledger(db, "RANGE", start_date=date(2024, 1, 1))


def test_cash_flow_projection_from_schedule(db: Session, direct_contract):
    create_contract(db, direct_contract)

    result = get_cash_flow_projection(db, start=date(2024, 2, 1), months=3)

    assert [row["expected_installments"] for row in result.rows] == [
        Decimal("500.00"), Decimal("500.00"), Decimal("500.00")
    ]
