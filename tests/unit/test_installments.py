"""Unit tests for installment schedule generation"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from deed_ledger.domain.installments import (
    BALLOON_INSTALLMENT_NUMBER,
    build_installment_schedule,
    is_overdue,
    outstanding_amount,
    settled_status,
)
from deed_ledger.domain.models import Installment, InstallmentStatus, InstallmentType, SaleType


def test_schedule_has_one_row_per_installment(direct_contract):
    """Test N regular installments numbered 1..N"""
    installments = build_installment_schedule(direct_contract)

    assert len(installments) == 32
    assert [i.installment_number for i in installments] == list(range(1, 33))
    assert all(i.amount == Decimal("500") for i in installments)
    assert all(i.type == InstallmentType.REGULAR for i in installments)
    assert all(i.status == InstallmentStatus.PENDING for i in installments)
    assert all(i.property_id == "#12" for i in installments)


def test_schedule_monthly_due_dates(direct_contract):
    """Test due dates advance one calendar month from the first installment"""
    installments = build_installment_schedule(direct_contract)

    assert installments[0].due_date == date(2024, 2, 15)
    assert installments[1].due_date == date(2024, 3, 15)
    assert installments[11].due_date == date(2025, 1, 15)


def test_schedule_month_end_clamping(direct_contract):
    """Test Jan 31 start clamps to the last day of shorter months"""
    contract = replace(direct_contract, first_installment_date=date(2024, 1, 31), installment_count=3)
    installments = build_installment_schedule(contract)

    assert [i.due_date for i in installments] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


def test_schedule_adds_balloon(direct_contract):
    """Test balloon row appended with number 0"""
    contract = replace(
        direct_contract, installment_count=2, balloon_amount=Decimal("3000"), balloon_date=date(2025, 12, 1)
    )
    installments = build_installment_schedule(contract)

    assert len(installments) == 3
    balloon = installments[-1]
    assert balloon.installment_number == BALLOON_INSTALLMENT_NUMBER
    assert balloon.type == InstallmentType.BALLOON
    assert balloon.amount == Decimal("3000")
    assert balloon.due_date == date(2025, 12, 1)


def test_schedule_is_deterministic(direct_contract):
    """Test identical terms produce identical rows"""
    assert build_installment_schedule(direct_contract) == build_installment_schedule(direct_contract)


def test_no_schedule_without_terms(direct_contract, cash_contract):
    """Test CASH sales and CFD contracts missing terms have no schedule"""
    assert build_installment_schedule(cash_contract) == []
    assert build_installment_schedule(replace(direct_contract, first_installment_date=None)) == []
    assert build_installment_schedule(replace(direct_contract, installment_count=0)) == []
    assert build_installment_schedule(replace(direct_contract, sale_type=SaleType.CASH)) == []


def test_is_overdue():
    installment = Installment(installment_number=1, due_date=date(2024, 3, 1), amount=Decimal("500"))

    assert is_overdue(installment, date(2024, 3, 2))
    assert not is_overdue(installment, date(2024, 3, 1))  # Due today is not late
    installment.status = InstallmentStatus.PAID
    assert not is_overdue(installment, date(2024, 6, 1))


def test_settled_status():
    assert settled_status(Decimal("500"), Decimal("500")) == InstallmentStatus.PAID
    assert settled_status(Decimal("500"), Decimal("650")) == InstallmentStatus.PAID
    assert settled_status(Decimal("500"), Decimal("200")) == InstallmentStatus.PARTIAL


def test_outstanding_amount():
    installment = Installment(installment_number=1, due_date=date(2024, 3, 1), amount=Decimal("500"))
    assert outstanding_amount(installment) == Decimal("500")

    installment.status = InstallmentStatus.PARTIAL
    installment.paid_amount = Decimal("200")
    assert outstanding_amount(installment) == Decimal("300")

    installment.status = InstallmentStatus.PAID
    assert outstanding_amount(installment) == Decimal("0")
