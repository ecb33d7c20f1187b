"""/v1/installments - schedule views, regeneration and payment application"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from deed_ledger.api.dependencies import get_request_id, to_http_exception
from deed_ledger.api.v1.schemas import InstallmentResponse, MarkPaidRequest
from deed_ledger.domain.models import InstallmentStatus
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.services import installments as installment_service

router = APIRouter()


@router.get("/installments", response_model=List[InstallmentResponse])
def list_installments(
    property_id: Optional[str] = Query(None, description='Property key, e.g. "#33" or "33"'),
    status: Optional[InstallmentStatus] = Query(None),
    db: Session = Depends(get_db),
):
    """Installments ordered by due date; PENDING rows past due are flagged OVERDUE first"""
    installments = installment_service.list_installments(db, property_id=property_id, status=status)
    return [InstallmentResponse.model_validate(i) for i in installments]


@router.get("/installments/overdue", response_model=List[InstallmentResponse])
def list_overdue(db: Session = Depends(get_db)):
    return [InstallmentResponse.model_validate(i) for i in installment_service.list_overdue(db)]


@router.post("/contracts/{contract_id}/installments/regenerate", response_model=List[InstallmentResponse])
def regenerate(contract_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        installments = installment_service.regenerate_installments(db, contract_id)
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return [InstallmentResponse.model_validate(i) for i in installments]


@router.post("/installments/{installment_id}/pay", response_model=InstallmentResponse)
def mark_paid(installment_id: int, body: MarkPaidRequest, request: Request, db: Session = Depends(get_db)):
    """Apply a payment to an installment (PAID when covered, PARTIAL otherwise)"""
    try:
        installment = installment_service.mark_installment_paid(
            db,
            installment_id,
            paid_amount=body.paid_amount,
            paid_date=body.paid_date,
            received_by=body.received_by,
            channel=body.channel,
            memo=body.memo,
            late_fee_amount=body.late_fee_amount,
        )
    except Exception as e:
        raise to_http_exception(e, get_request_id(request))
    return InstallmentResponse.model_validate(installment)
