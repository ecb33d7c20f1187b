"""Variant-conditional contract invariants shared by creation, update and CSV import"""

import re
from decimal import Decimal
from typing import List

from deed_ledger.domain.exceptions import ValidationError
from deed_ledger.domain.models import Contract, DeedStatus, OriginType, SaleType

PAYMENT_SPLIT_TOLERANCE = Decimal("0.01")

_PROPERTY_PREFIX = re.compile(r"^(property|prop)", re.IGNORECASE)


def normalize_property_id(raw: str | None) -> str:
    """
    Canonical "#NN" property key.

    "33", "#33", "  #33 ", "Property 33" and "PROP 33" all map to "#33".
    Empty input stays empty.
    """
    if not raw:
        return ""
    normalized = re.sub(r"\s+", "", raw.strip()).replace("#", "")
    normalized = _PROPERTY_PREFIX.sub("", normalized)
    return f"#{normalized}" if normalized else ""


def check_contract_terms(contract: Contract) -> List[str]:
    """
    Return every invariant the contract's variant combination violates.

    Rules:
    - ASSUMED requires transfer_date, opening_receivable > 0 and installments_paid_by_transfer
    - DIRECT must leave transfer_date and opening_receivable blank
    - CFD requires installment_amount and installment_count
    - CASH requires close_date
    - balloon_amount > 0 requires balloon_date
    - RECORDED deed requires deed_recorded_date; NOT_RECORDED must leave it blank
    """
    errors: List[str] = []

    if not contract.property_id:
        errors.append("propertyId is required")
    if contract.contract_price is None or contract.contract_price < 0:
        errors.append("contractPrice must be zero or positive")
    if contract.cost_basis is None or contract.cost_basis < 0:
        errors.append("costBasis must be zero or positive")
    if contract.down_payment is not None and contract.down_payment < 0:
        errors.append("downPayment cannot be negative")

    if contract.origin_type == OriginType.ASSUMED:
        if contract.transfer_date is None:
            errors.append("ASSUMED requires transferDate")
        if not contract.opening_receivable or contract.opening_receivable <= 0:
            errors.append("ASSUMED requires openingReceivable")
        if contract.installments_paid_by_transfer is None:
            errors.append("ASSUMED requires installmentsPaidByTransfer")
    elif contract.origin_type == OriginType.DIRECT:
        if contract.transfer_date is not None:
            errors.append("DIRECT must have blank transferDate")
        if contract.opening_receivable:
            errors.append("DIRECT must have blank openingReceivable")

    if contract.sale_type == SaleType.CFD:
        if not contract.installment_amount or not contract.installment_count:
            errors.append("CFD requires installmentAmount and installmentCount")
    elif contract.sale_type == SaleType.CASH:
        if contract.close_date is None:
            errors.append("CASH requires closeDate")

    if contract.balloon_amount and contract.balloon_amount > 0 and contract.balloon_date is None:
        errors.append("balloonAmount requires balloonDate")

    if contract.deed_status == DeedStatus.RECORDED and contract.deed_recorded_date is None:
        errors.append("RECORDED deed status requires deedRecordedDate")
    if contract.deed_status == DeedStatus.NOT_RECORDED and contract.deed_recorded_date is not None:
        errors.append("NOT_RECORDED deed status must have blank deedRecordedDate")

    return errors


def validate_contract_terms(contract: Contract) -> None:
    """Raise ValidationError on the first violated invariant"""
    errors = check_contract_terms(contract)
    if errors:
        raise ValidationError(errors[0])


def validate_payment_split(amount_total: Decimal, principal_amount: Decimal, late_fee_amount: Decimal) -> None:
    """principal + late fee must equal total within one cent"""
    if abs(amount_total - (principal_amount + late_fee_amount)) > PAYMENT_SPLIT_TOLERANCE:
        raise ValidationError(
            "Principal amount + Late fee amount must equal Total amount",
            field="amountTotal",
        )
    if principal_amount < 0 or late_fee_amount < 0:
        raise ValidationError("Payment amounts cannot be negative", field="principalAmount")
