"""Batch contract import from CSV rows"""

import csv
import io
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from deed_ledger.domain.contract_rules import check_contract_terms, normalize_property_id
from deed_ledger.domain.exceptions import ImportRowError, ValidationError
from deed_ledger.domain.models import (
    Contract,
    ContractStatus,
    DeedStatus,
    ImportResult,
    ImportRowFailure,
    OriginType,
    SaleType,
)
from deed_ledger.infrastructure.database.repositories import ContractRepository
from deed_ledger.infrastructure.observability.logging import log_import_result
from deed_ledger.infrastructure.observability.metrics import (
    contracts_imported_counter,
    import_row_errors_counter,
)
from deed_ledger.services.contracts import add_contract
from deed_ledger.utils.date_utils import parse_date
from deed_ledger.utils.money import parse_decimal, parse_optional_decimal

# Header row is row 1
FIRST_DATA_ROW = 2

REQUIRED_COLUMNS = ("propertyId", "buyerName", "originType", "saleType", "contractDate", "contractPrice", "costBasis")


def _cell(row: Mapping[str, Any], column: str) -> Optional[str]:
    value = row.get(column)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse(row: Mapping[str, Any], column: str, parser: Callable[[Any], Any]) -> Any:
    try:
        return parser(_cell(row, column))
    except ValueError:
        raise ImportRowError(f"Invalid {column}: {row.get(column)!r}")


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    number = parse_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"Not a whole number: {value!r}")
    return int(number)


def _parse_enum(enum_cls, column: str, default=None):
    def parser(value: Optional[str]):
        if value is None:
            return default
        for member in enum_cls:
            if value.upper() == member.value.upper():
                return member
        raise ValueError(f"Unknown {column}: {value!r}")
    return parser


def contract_from_row(row: Mapping[str, Any]) -> Contract:
    """Parse one CSV row (camelCase headers) into an unsaved Contract"""
    for column in REQUIRED_COLUMNS:
        if _cell(row, column) is None:
            raise ImportRowError(f"Missing required field: {column}")

    return Contract(
        id=None,
        property_id=normalize_property_id(_cell(row, "propertyId")),
        buyer_name=_cell(row, "buyerName"),
        county=_cell(row, "county") or "",
        state=_cell(row, "state") or "",
        origin_type=_parse(row, "originType", _parse_enum(OriginType, "originType")),
        sale_type=_parse(row, "saleType", _parse_enum(SaleType, "saleType")),
        contract_date=_parse(row, "contractDate", parse_date),
        transfer_date=_parse(row, "transferDate", parse_date),
        close_date=_parse(row, "closeDate", parse_date),
        first_installment_date=_parse(row, "firstInstallmentDate", parse_date),
        contract_price=_parse(row, "contractPrice", parse_decimal),
        cost_basis=_parse(row, "costBasis", parse_decimal),
        down_payment=_parse(row, "downPayment", parse_decimal),
        installment_amount=_parse(row, "installmentAmount", parse_optional_decimal),
        installment_count=_parse(row, "installmentCount", _parse_int),
        installments_paid_by_transfer=_parse(row, "installmentsPaidByTransfer", _parse_int),
        balloon_amount=_parse(row, "balloonAmount", parse_optional_decimal),
        balloon_date=_parse(row, "balloonDate", parse_date),
        opening_receivable=_parse(row, "openingReceivable", parse_optional_decimal),
        status=_parse(row, "status", _parse_enum(ContractStatus, "status", ContractStatus.ACTIVE)),
        deed_status=_parse(row, "deedStatus", _parse_enum(DeedStatus, "deedStatus", DeedStatus.UNKNOWN)),
        deed_recorded_date=_parse(row, "deedRecordedDate", parse_date),
        notes=_cell(row, "notes"),
    )


def _import_row(db: Session, row: Mapping[str, Any]) -> None:
    contract = contract_from_row(row)

    if ContractRepository(db).get_by_property_id(contract.property_id) is not None:
        raise ImportRowError(f"Duplicate propertyId {contract.property_id}")

    errors = check_contract_terms(contract)
    if errors:
        raise ImportRowError(errors[0])

    add_contract(db, contract)


def import_contracts(db: Session, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
    """
    Import contracts row by row.

    Each valid row commits on its own; a rejected row is reported with its
    1-based file row number (header = row 1) and never undoes other rows.
    """
    start_time = time.time()
    imported = 0
    errors: List[ImportRowFailure] = []

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        try:
            _import_row(db, row)
            db.commit()
            imported += 1
        except (ImportRowError, ValidationError) as e:
            db.rollback()
            errors.append(ImportRowFailure(row=row_number, message=str(e)))
        except Exception:
            db.rollback()
            logging.exception("Unexpected error importing row", extra={"row": row_number})
            errors.append(ImportRowFailure(row=row_number, message="Unexpected error importing row"))

    contracts_imported_counter.inc(imported)
    import_row_errors_counter.inc(len(errors))
    log_import_result(imported, len(errors), (time.time() - start_time) * 1000)

    return ImportResult(success=not errors, imported=imported, errors=errors)


def import_contracts_csv(db: Session, content: str) -> ImportResult:
    """Import from raw CSV text with a camelCase header row"""
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    rows: List[Dict[str, Any]] = [dict(r) for r in reader]
    return import_contracts(db, rows)
