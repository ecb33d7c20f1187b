"""/v1/payments - record and correct cash receipts"""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from deed_ledger.api.dependencies import get_actor, get_request_id, to_http_exception
from deed_ledger.api.v1.schemas import AuditLogEntryResponse, PaymentCreate, PaymentResponse, PaymentUpdate
from deed_ledger.domain.models import Payment
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.services import payments as payment_service
from deed_ledger.services.audit import get_audit_log_for_payment

router = APIRouter()


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def create_payment(body: PaymentCreate, request: Request, db: Session = Depends(get_db)):
    """Record a payment; principal + late fee must equal the total within one cent"""
    try:
        payment = payment_service.create_payment(db, Payment(id=None, **body.model_dump()))
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return PaymentResponse.model_validate(payment)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        payment = payment_service.get_payment(db, payment_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return PaymentResponse.model_validate(payment)


@router.patch("/payments/{payment_id}", response_model=PaymentResponse)
def update_payment(
    payment_id: int,
    body: PaymentUpdate,
    request: Request,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        payment = payment_service.update_payment(db, payment_id, body.changes(), actor, body.reason)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return PaymentResponse.model_validate(payment)


@router.get("/payments/{payment_id}/audit-log", response_model=List[AuditLogEntryResponse])
def payment_audit_log(payment_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        entries = get_audit_log_for_payment(db, payment_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return [AuditLogEntryResponse.model_validate(e) for e in entries]
