"""/v1/contracts - contract CRUD, summary, audit log and CSV import"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from deed_ledger.api.dependencies import get_actor, get_request_id, to_http_exception
from deed_ledger.api.v1.schemas import (
    AttachmentCreate,
    AuditLogEntryResponse,
    ContractCreate,
    ContractResponse,
    ContractUpdate,
    ImportRequest,
    ImportResultResponse,
    PaymentResponse,
)
from deed_ledger.domain.models import Contract
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.services import contracts as contract_service
from deed_ledger.services.audit import get_audit_log_for_contract
from deed_ledger.services.imports import import_contracts, import_contracts_csv
from deed_ledger.services.payments import list_payments
from deed_ledger.services.reports import get_contract_summary

router = APIRouter()


@router.post("/contracts", response_model=ContractResponse, status_code=201)
def create_contract(body: ContractCreate, request: Request, db: Session = Depends(get_db)):
    """
    Create a contract.

    CFD contracts with schedule terms get their installments generated; CASH
    sales with a close date get their closing payment recorded.
    """
    request_id = get_request_id(request)
    try:
        contract = contract_service.create_contract(db, Contract(id=None, **body.model_dump()))
    except Exception as e:
        raise to_http_exception(e, request_id)
    return ContractResponse.model_validate(contract)


@router.get("/contracts", response_model=List[ContractResponse])
def list_contracts(
    status: Optional[str] = Query(None),
    origin_type: Optional[str] = Query(None),
    sale_type: Optional[str] = Query(None),
    county: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    filters = {"status": status, "origin_type": origin_type, "sale_type": sale_type, "county": county}
    return [ContractResponse.model_validate(c) for c in contract_service.list_contracts(db, filters)]


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        contract = contract_service.get_contract(db, contract_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return ContractResponse.model_validate(contract)


@router.patch("/contracts/{contract_id}", response_model=ContractResponse)
def update_contract(
    contract_id: int,
    body: ContractUpdate,
    request: Request,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Update a contract; tax-critical changes are audited under the given reason"""
    try:
        contract = contract_service.update_contract(db, contract_id, body.changes(), actor, body.reason)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return ContractResponse.model_validate(contract)


@router.get("/contracts/{contract_id}/summary")
def contract_summary(
    contract_id: int,
    request: Request,
    year: Optional[int] = Query(None, description="Tax year for year-specific figures"),
    as_of: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return get_contract_summary(db, contract_id, year, as_of)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))


@router.get("/contracts/{contract_id}/audit-log", response_model=List[AuditLogEntryResponse])
def contract_audit_log(contract_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        entries = get_audit_log_for_contract(db, contract_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return [AuditLogEntryResponse.model_validate(e) for e in entries]


@router.get("/contracts/{contract_id}/payments", response_model=List[PaymentResponse])
def contract_payments(contract_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        contract_service.get_contract(db, contract_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return [PaymentResponse.model_validate(p) for p in list_payments(db, contract_id)]


@router.post("/contracts/{contract_id}/attachments", status_code=201)
def add_attachment(contract_id: int, body: AttachmentCreate, request: Request, db: Session = Depends(get_db)):
    try:
        contract_service.add_attachment(db, contract_id, body.doc_type, body.url)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return {"contract_id": contract_id, "doc_type": body.doc_type.value}


@router.post("/contracts/import", response_model=ImportResultResponse)
def import_rows(body: ImportRequest, db: Session = Depends(get_db)):
    """Import parsed CSV rows; row failures are reported, never raised"""
    return ImportResultResponse.model_validate(import_contracts(db, body.rows))


@router.post("/contracts/import/csv", response_model=ImportResultResponse)
async def import_csv(request: Request, db: Session = Depends(get_db)):
    """Import a raw text/csv upload with a camelCase header row"""
    content = (await request.body()).decode("utf-8-sig")
    if not content.strip():
        raise HTTPException(status_code=422, detail="CSV body is empty")
    return ImportResultResponse.model_validate(import_contracts_csv(db, content))
