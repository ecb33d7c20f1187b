"""Report services - load ledger state and run the period reports"""

import csv
import io
from datetime import date
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from deed_ledger.config import settings
from deed_ledger.domain import reports
from deed_ledger.domain.exceptions import ValidationError
from deed_ledger.domain.models import ReportResult
from deed_ledger.domain.reports import UNPAID_STATUSES
from deed_ledger.infrastructure.database.repositories import InstallmentRepository, installment_to_domain
from deed_ledger.services.contracts import get_contract, list_contracts
from deed_ledger.services.installments import refresh_overdue
from deed_ledger.services.payments import list_payments
from deed_ledger.utils.date_utils import resolve_period


def irr_options() -> Dict[str, Any]:
    return {
        "tolerance": settings.irr_tolerance,
        "max_iterations": settings.irr_max_iterations,
        "min_rate": settings.irr_min_rate,
        "max_rate": settings.irr_max_rate,
    }


def get_tax_schedule(db: Session, year: int, filters: Optional[Mapping[str, Any]] = None) -> ReportResult:
    return reports.tax_schedule(list_contracts(db, filters), list_payments(db), year)


def get_subledger(
    db: Session,
    period: str = "YEAR",
    year: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    filters: Optional[Mapping[str, Any]] = None,
) -> ReportResult:
    try:
        start, end, label = resolve_period(period, year, start_date, end_date)
    except ValueError as e:
        raise ValidationError(str(e), field="period")
    return reports.subledger(list_contracts(db, filters), list_payments(db), start, end, label)


def get_cash_flow_projection(
    db: Session,
    start: Optional[date] = None,
    months: Optional[int] = None,
) -> ReportResult:
    """Expected collections from the unpaid schedule, starting at start's month"""
    refresh_overdue(db)
    records = InstallmentRepository(db).list(statuses=UNPAID_STATUSES)
    return reports.cash_flow_projection(
        [installment_to_domain(r) for r in records],
        start or date.today(),
        months or settings.cash_flow_horizon_months,
    )


def get_pre_deed_tie_out(
    db: Session,
    cutoff: date,
    filters: Optional[Mapping[str, Any]] = None,
) -> ReportResult:
    return reports.pre_deed_tie_out(list_contracts(db), list_payments(db), cutoff, filters)


def get_dashboard_kpis(
    db: Session,
    year: Optional[int] = None,
    filters: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    return reports.dashboard_kpis(list_contracts(db), list_payments(db), year or date.today().year, filters)


def get_contract_summary(
    db: Session,
    contract_id: int,
    year: Optional[int] = None,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    contract = get_contract(db, contract_id)
    return reports.contract_summary(contract, list_payments(db, contract_id), year, as_of, **irr_options())


def get_performance_ranking(
    db: Session,
    as_of: Optional[date] = None,
    filters: Optional[Mapping[str, Any]] = None,
) -> ReportResult:
    return reports.performance_ranking(list_contracts(db), list_payments(db), as_of, filters, **irr_options())


def render_csv(result: ReportResult) -> str:
    """Report rows as CSV text, header from the first row's keys"""
    if not result.rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(result.rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    for row in result.rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue()
