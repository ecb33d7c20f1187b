"""GET /v1/exceptions - data-quality findings across the contract book"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from deed_ledger.api.v1.schemas import LedgerExceptionResponse
from deed_ledger.domain.models import Severity
from deed_ledger.infrastructure.database.session import get_db
from deed_ledger.services.data_quality import validate_all_contracts, validate_contract

router = APIRouter()


@router.get("/exceptions", response_model=List[LedgerExceptionResponse])
def list_exceptions(
    severity: Optional[Severity] = Query(None),
    contract_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Run every data-quality rule and return the findings, most severe first.

    Each finding carries a deep link to the contract or payment to fix.
    """
    findings = validate_contract(db, contract_id) if contract_id is not None else validate_all_contracts(db)
    if severity is not None:
        findings = [f for f in findings if f.severity == severity]
    return [LedgerExceptionResponse.model_validate(f) for f in findings]
