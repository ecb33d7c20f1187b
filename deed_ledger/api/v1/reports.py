"""/v1/reports - tax schedule, subledger, cash flow, pre-deed tie-out, dashboard and ranking"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.responses import Response

from deed_ledger.api.dependencies import get_report_filters, get_request_id, to_http_exception
from deed_ledger.api.v1.schemas import ReportResponse
from deed_ledger.domain.models import ReportResult
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.services import reports as report_service

router = APIRouter()

FORMAT_PATTERN = "^(json|csv)$"


def report_response(result: ReportResult, fmt: str):
    """JSON body by default; CSV download named after the report when format=csv"""
    if fmt == "csv":
        return Response(
            content=report_service.render_csv(result),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )
    return ReportResponse.model_validate(result)


@router.get("/reports/tax-schedule", response_model=ReportResponse)
def tax_schedule(
    year: int = Query(..., ge=1900, le=2100),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    filters: Dict[str, Any] = Depends(get_report_filters),
    db: Session = Depends(get_db),
):
    return report_response(report_service.get_tax_schedule(db, year, filters), format)


@router.get("/reports/subledger", response_model=ReportResponse)
def subledger(
    request: Request,
    period: str = Query("YEAR", description="YEAR, Q1-Q4 or RANGE"),
    year: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    filters: Dict[str, Any] = Depends(get_report_filters),
    db: Session = Depends(get_db),
):
    try:
        result = report_service.get_subledger(db, period, year, start_date, end_date, filters)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return report_response(result, format)


@router.get("/reports/cash-flow", response_model=ReportResponse)
def cash_flow(
    start: Optional[date] = Query(None, description="Any day in the first projected month"),
    months: Optional[int] = Query(None, ge=1, le=120),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    db: Session = Depends(get_db),
):
    return report_response(report_service.get_cash_flow_projection(db, start, months), format)


@router.get("/reports/pre-deed", response_model=ReportResponse)
def pre_deed_tie_out(
    cutoff: date = Query(...),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    filters: Dict[str, Any] = Depends(get_report_filters),
    db: Session = Depends(get_db),
):
    return report_response(report_service.get_pre_deed_tie_out(db, cutoff, filters), format)


@router.get("/reports/dashboard")
def dashboard(
    year: Optional[int] = Query(None),
    filters: Dict[str, Any] = Depends(get_report_filters),
    db: Session = Depends(get_db),
):
    return report_service.get_dashboard_kpis(db, year, filters)


@router.get("/reports/performance", response_model=ReportResponse)
def performance_ranking(
    as_of: Optional[date] = Query(None),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    filters: Dict[str, Any] = Depends(get_report_filters),
    db: Session = Depends(get_db),
):
    return report_response(report_service.get_performance_ranking(db, as_of, filters), format)
