"""Period reports composed from the calculation engine and the installment projection"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from deed_ledger.domain.calculations import (
    gain_recognized,
    gross_profit,
    gross_profit_percent,
    irr,
    period_receipts,
    receivable_balance,
    roi,
)
from deed_ledger.domain.installments import outstanding_amount
from deed_ledger.domain.models import (
    Contract,
    ContractStatus,
    DeedStatus,
    Installment,
    InstallmentStatus,
    InstallmentType,
    Payment,
    ReportResult,
    SaleType,
)
from deed_ledger.utils.date_utils import add_months, month_key, month_start, year_bounds
from deed_ledger.utils.money import ZERO, to_money

FILTER_FIELDS = {
    "status": "status",
    "origin_type": "origin_type",
    "sale_type": "sale_type",
    "county": "county",
    "property_id": "property_id",
}

PRE_DEED = "Y"
RECORDED = "N"
MISSING_DEED_INFO = "Missing"

UNPAID_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE, InstallmentStatus.PARTIAL)


def _value(raw) -> Any:
    return raw.value if hasattr(raw, "value") else raw


def apply_filters(contracts: Iterable[Contract], filters: Optional[Mapping[str, Any]]) -> List[Contract]:
    """Keep contracts matching every given filter; None or "all" disables a filter"""
    selected = list(contracts)
    for key, wanted in (filters or {}).items():
        if key not in FILTER_FIELDS or wanted is None or wanted == "all" or wanted == "":
            continue
        attr = FILTER_FIELDS[key]
        selected = [c for c in selected if _value(getattr(c, attr)) == _value(wanted)]
    return selected


def _payments_by_contract(payments: Iterable[Payment]) -> Dict[int, List[Payment]]:
    grouped: Dict[int, List[Payment]] = defaultdict(list)
    for payment in payments:
        grouped[payment.contract_id].append(payment)
    return grouped


def tax_schedule(contracts: Iterable[Contract], payments: Iterable[Payment], year: int) -> ReportResult:
    """
    Installment-sale profit schedule for one tax year.

    Per contract: principal received in the year (down payment counted once),
    gross profit %, gain recognized, late fees, and total profit recognized
    (gain + late fees).
    """
    start, end = year_bounds(year)
    grouped = _payments_by_contract(payments)
    rows = []
    totals = defaultdict(lambda: ZERO)

    for contract in contracts:
        receipts = period_receipts(contract, grouped.get(contract.id, []), start, end)
        gp_percent = gross_profit_percent(contract.contract_price, contract.cost_basis)
        gain = gain_recognized(receipts.principal_received, gp_percent)

        row = {
            "contract_id": contract.id,
            "property_id": contract.property_id,
            "buyer_name": contract.buyer_name,
            "origin_type": contract.origin_type.value,
            "sale_type": contract.sale_type.value,
            "principal_received": to_money(receipts.principal_received),
            "gross_profit_percent": gp_percent.quantize(Decimal("0.0001")),
            "gain_recognized": to_money(gain),
            "late_fees": to_money(receipts.late_fees),
            "total_profit_recognized": to_money(gain + receipts.late_fees),
        }
        rows.append(row)
        for key in ("principal_received", "gain_recognized", "late_fees", "total_profit_recognized"):
            totals[key] += row[key]

    return ReportResult(rows=rows, totals=dict(totals), filename=f"tax_profit_schedule_{year}.csv")


def subledger(
    contracts: Iterable[Contract],
    payments: Iterable[Payment],
    start: date,
    end: date,
    label: str,
) -> ReportResult:
    """
    Contracts receivable subledger for reconciliation against the A/R account.

    Opening balance is the receivable at the close of the day before start;
    ending balance is the receivable as of end.
    """
    grouped = _payments_by_contract(payments)
    day_before = date.fromordinal(start.toordinal() - 1)
    rows = []
    totals = defaultdict(lambda: ZERO)

    for contract in contracts:
        contract_payments = grouped.get(contract.id, [])
        receipts = period_receipts(contract, contract_payments, start, end)
        gp_percent = gross_profit_percent(contract.contract_price, contract.cost_basis)

        row = {
            "contract_id": contract.id,
            "property_id": contract.property_id,
            "buyer_name": contract.buyer_name,
            "origin_type": contract.origin_type.value,
            "sale_type": contract.sale_type.value,
            "status": contract.status.value,
            "opening_receivable": to_money(receivable_balance(contract, contract_payments, day_before)),
            "down_payment_received": to_money(receipts.down_payment),
            "installment_principal": to_money(receipts.installment_principal),
            "late_fees": to_money(receipts.late_fees),
            "cash_collected": to_money(receipts.cash_collected),
            "ending_receivable": to_money(receivable_balance(contract, contract_payments, end)),
            "gain_recognized": to_money(gain_recognized(receipts.principal_received, gp_percent)),
        }
        rows.append(row)
        for key in ("opening_receivable", "down_payment_received", "installment_principal", "late_fees",
                    "cash_collected", "ending_receivable", "gain_recognized"):
            totals[key] += row[key]

    return ReportResult(rows=rows, totals=dict(totals), filename=f"contracts_subledger_{label}.csv")


def cash_flow_projection(installments: Iterable[Installment], start: date, months: int = 12) -> ReportResult:
    """
    Expected collections per calendar month from the installment schedule.

    Only unpaid rows count (PENDING, OVERDUE, PARTIAL remainder); balloons are
    reported separately from regular installments.
    """
    first = month_start(start)
    buckets = {}
    for offset in range(months):
        month = add_months(first, offset)
        buckets[month_key(month)] = {
            "month_key": month_key(month),
            "month": month.strftime("%b %Y"),
            "expected_installments": ZERO,
            "expected_balloons": ZERO,
            "total_expected": ZERO,
            "contracts": set(),
        }

    for installment in installments:
        if installment.status not in UNPAID_STATUSES:
            continue
        bucket = buckets.get(month_key(installment.due_date))
        if bucket is None:
            continue
        amount = outstanding_amount(installment)
        if installment.type == InstallmentType.BALLOON:
            bucket["expected_balloons"] += amount
        else:
            bucket["expected_installments"] += amount
        bucket["total_expected"] += amount
        bucket["contracts"].add(installment.contract_id)

    rows = []
    for bucket in buckets.values():
        contract_ids = bucket.pop("contracts")
        bucket["contract_count"] = len(contract_ids)
        for key in ("expected_installments", "expected_balloons", "total_expected"):
            bucket[key] = to_money(bucket[key])
        rows.append(bucket)

    totals = {
        key: sum((row[key] for row in rows), ZERO)
        for key in ("expected_installments", "expected_balloons", "total_expected")
    }
    return ReportResult(rows=rows, totals=totals, filename=f"cash_flow_projection_{month_key(first)}.csv")


def classify_pre_deed(contract: Contract, cutoff: date) -> str:
    """Y = deposits still pre-deed as of cutoff, N = deed recorded by cutoff, Missing = unknown"""
    if contract.deed_status == DeedStatus.NOT_RECORDED:
        return PRE_DEED
    if contract.deed_status == DeedStatus.RECORDED:
        if contract.deed_recorded_date is not None and contract.deed_recorded_date <= cutoff:
            return RECORDED
        return PRE_DEED
    return MISSING_DEED_INFO


def _receipt_dates(payments: List[Payment]) -> str:
    if not payments:
        return "N/A"
    ordered = sorted(p.payment_date for p in payments)
    first, last = ordered[0], ordered[-1]
    if len(ordered) == 1:
        return f"{first.strftime('%b %d')}, {first.year}"
    return f"{first.strftime('%b %d')}-{last.strftime('%b %d')}, {last.year}"


def pre_deed_tie_out(
    contracts: Iterable[Contract],
    payments: Iterable[Payment],
    cutoff: date,
    filters: Optional[Mapping[str, Any]] = None,
) -> ReportResult:
    """
    Customer deposits tie-out: cash received through cutoff on contracts whose
    deed was not yet recorded as of cutoff.
    """
    grouped = _payments_by_contract(payments)
    rows = []
    confirmed_pre_deed = ZERO
    missing_deed_info = ZERO

    for contract in apply_filters(contracts, filters):
        # Receipts after cutoff are unknown as of cutoff, including a down payment row
        through_cutoff = [p for p in grouped.get(contract.id, []) if p.payment_date <= cutoff]
        receipts = period_receipts(contract, through_cutoff, None, cutoff)
        pre_deed = classify_pre_deed(contract, cutoff)
        total = receipts.principal_received

        if pre_deed == PRE_DEED:
            confirmed_pre_deed += total
        elif pre_deed == MISSING_DEED_INFO:
            missing_deed_info += total

        sale_label = "Contract for Deed" if contract.sale_type == SaleType.CFD else contract.sale_type.value
        rows.append({
            "contract_id": contract.id,
            "property_id": contract.property_id,
            "buyer_contract_id": f"{contract.buyer_name} / {contract.property_id}",
            "property_county": f"{contract.property_id} / {contract.county}, {contract.state}",
            "contract_date": contract.contract_date.isoformat(),
            "deed_status": contract.deed_status.value,
            "deed_recorded_date": (
                contract.deed_recorded_date.isoformat() if contract.deed_recorded_date else "Missing"
            ),
            "down_payment_received": to_money(receipts.down_payment),
            "installments_received": to_money(receipts.installment_principal),
            "total_received": to_money(total),
            "status": contract.status.value,
            "pre_deed": pre_deed,
            "contract_description": f"Property {contract.property_id} - {sale_label}",
            "payment_dates": _receipt_dates(receipts.payments),
        })

    totals = {
        "confirmed_pre_deed": to_money(confirmed_pre_deed),
        "missing_deed_info": to_money(missing_deed_info),
    }
    return ReportResult(rows=rows, totals=totals, filename=f"PreDeed_TieOut_{cutoff.isoformat()}.csv")


def dashboard_kpis(
    contracts: Iterable[Contract],
    payments: Iterable[Payment],
    year: int,
    filters: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Portfolio KPIs; YTD figures use the same scope and down-payment rules as the tax schedule"""
    selected = apply_filters(contracts, filters)
    grouped = _payments_by_contract(payments)
    start, end = year_bounds(year)

    total_price = sum((c.contract_price for c in selected), ZERO)
    total_cost = sum((c.cost_basis for c in selected), ZERO)
    total_receivable = ZERO
    principal_ytd = ZERO
    gain_ytd = ZERO
    late_fees_ytd = ZERO

    for contract in selected:
        contract_payments = grouped.get(contract.id, [])
        total_receivable += receivable_balance(contract, contract_payments)
        receipts = period_receipts(contract, contract_payments, start, end)
        principal_ytd += receipts.principal_received
        late_fees_ytd += receipts.late_fees
        gain_ytd += gain_recognized(
            receipts.principal_received,
            gross_profit_percent(contract.contract_price, contract.cost_basis),
        )

    return {
        "year": year,
        "active_contracts": sum(1 for c in selected if c.status == ContractStatus.ACTIVE),
        "total_contract_price": to_money(total_price),
        "total_cost_basis": to_money(total_cost),
        "total_gross_profit": to_money(total_price - total_cost),
        "total_receivable_balance": to_money(total_receivable),
        "principal_received_ytd": to_money(principal_ytd),
        "gain_recognized_ytd": to_money(gain_ytd),
        "late_fees_ytd": to_money(late_fees_ytd),
    }


def contract_summary(
    contract: Contract,
    payments: Iterable[Payment],
    year: Optional[int] = None,
    as_of: Optional[date] = None,
    **irr_options,
) -> Dict[str, Any]:
    """Calculated fields for one contract, optionally with year-specific figures"""
    payments = list(payments)
    gp_percent = gross_profit_percent(contract.contract_price, contract.cost_basis)

    summary = {
        "contract_id": contract.id,
        "property_id": contract.property_id,
        "gross_profit_percent": gp_percent.quantize(Decimal("0.0001")),
        "gross_profit": to_money(gross_profit(contract.contract_price, contract.cost_basis)),
        "receivable_balance": to_money(receivable_balance(contract, payments)),
        "roi": roi(contract.contract_price, contract.cost_basis).quantize(Decimal("0.01")),
        "irr": irr(contract, payments, as_of, **irr_options),
        "year": year,
        "principal_received_year": ZERO,
        "gain_recognized_year": ZERO,
        "late_fees_year": ZERO,
        "total_profit_recognized_year": ZERO,
    }

    if year is not None:
        start, end = year_bounds(year)
        receipts = period_receipts(contract, payments, start, end)
        gain = gain_recognized(receipts.principal_received, gp_percent)
        summary.update({
            "principal_received_year": to_money(receipts.principal_received),
            "gain_recognized_year": to_money(gain),
            "late_fees_year": to_money(receipts.late_fees),
            "total_profit_recognized_year": to_money(gain + receipts.late_fees),
        })

    return summary


def performance_ranking(
    contracts: Iterable[Contract],
    payments: Iterable[Payment],
    as_of: Optional[date] = None,
    filters: Optional[Mapping[str, Any]] = None,
    **irr_options,
) -> ReportResult:
    """Contracts ranked by ROI, highest first, with IRR alongside"""
    grouped = _payments_by_contract(payments)
    rows = []
    for contract in apply_filters(contracts, filters):
        contract_payments = grouped.get(contract.id, [])
        rows.append({
            "contract_id": contract.id,
            "property_id": contract.property_id,
            "buyer_name": contract.buyer_name,
            "county": contract.county,
            "origin_type": contract.origin_type.value,
            "status": contract.status.value,
            "contract_price": to_money(contract.contract_price),
            "cost_basis": to_money(contract.cost_basis),
            "gross_profit": to_money(gross_profit(contract.contract_price, contract.cost_basis)),
            "roi": roi(contract.contract_price, contract.cost_basis).quantize(Decimal("0.01")),
            "irr": irr(contract, contract_payments, as_of, **irr_options),
        })

    rows.sort(key=lambda row: row["roi"], reverse=True)
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return ReportResult(rows=rows, filename="performance_ranking.csv")
