"""Installment schedule generation for Contract-for-Deed repayment"""

from datetime import date
from decimal import Decimal
from typing import List

from deed_ledger.domain.models import (
    Contract,
    Installment,
    InstallmentStatus,
    InstallmentType,
    SaleType,
)
from deed_ledger.utils.date_utils import add_months

# Changing any of these on a contract invalidates its schedule
SCHEDULE_FIELDS = (
    "first_installment_date",
    "installment_amount",
    "installment_count",
    "balloon_amount",
    "balloon_date",
)

BALLOON_INSTALLMENT_NUMBER = 0


def has_schedule_terms(contract: Contract) -> bool:
    return (
        contract.sale_type == SaleType.CFD
        and contract.first_installment_date is not None
        and bool(contract.installment_amount)
        and bool(contract.installment_count)
    )


def build_installment_schedule(contract: Contract) -> List[Installment]:
    """
    Generate the monthly amortization schedule for a CFD contract.

    Requirements:
    - CFD with first_installment_date, installment_amount and installment_count,
      otherwise no schedule
    - installment_count REGULAR rows numbered 1..N, one calendar month apart
    - optional BALLOON row (number 0) when balloon_amount and balloon_date are set
    - every row starts PENDING

    Example:
        first 2024-01-31, amount 500, count 3
        -> #1 2024-01-31, #2 2024-02-29, #3 2024-03-31 (month-end clamped from the start date)
    """
    if not has_schedule_terms(contract):
        return []

    installments = []
    for i in range(contract.installment_count):
        installments.append(
            Installment(
                installment_number=i + 1,
                due_date=add_months(contract.first_installment_date, i),
                amount=contract.installment_amount,
                type=InstallmentType.REGULAR,
                status=InstallmentStatus.PENDING,
                contract_id=contract.id,
                property_id=contract.property_id,
            )
        )

    if contract.balloon_amount and contract.balloon_amount > 0 and contract.balloon_date:
        installments.append(
            Installment(
                installment_number=BALLOON_INSTALLMENT_NUMBER,
                due_date=contract.balloon_date,
                amount=contract.balloon_amount,
                type=InstallmentType.BALLOON,
                status=InstallmentStatus.PENDING,
                contract_id=contract.id,
                property_id=contract.property_id,
            )
        )

    return installments


def is_overdue(installment: Installment, today: date) -> bool:
    return installment.status == InstallmentStatus.PENDING and installment.due_date < today


def settled_status(amount: Decimal, paid_amount: Decimal) -> InstallmentStatus:
    """PAID once the obligation is fully covered, PARTIAL otherwise"""
    return InstallmentStatus.PAID if paid_amount >= amount else InstallmentStatus.PARTIAL


def outstanding_amount(installment: Installment) -> Decimal:
    """What is still expected on an installment (0 once PAID)"""
    if installment.status == InstallmentStatus.PAID:
        return Decimal("0")
    if installment.status == InstallmentStatus.PARTIAL and installment.paid_amount is not None:
        return max(installment.amount - installment.paid_amount, Decimal("0"))
    return installment.amount
