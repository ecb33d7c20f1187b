"""Data-quality validation sweep over the whole contract book"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from sqlalchemy.orm import Session

from deed_ledger.domain.data_quality import RULES, ContractSnapshot
from deed_ledger.domain.models import Contract, LedgerException, Payment, Severity
from deed_ledger.infrastructure.database.repositories import (
    AttachmentRepository,
    ContractRepository,
    PaymentRepository,
    contract_to_domain,
    payment_to_domain,
)
from deed_ledger.infrastructure.observability.logging import log_data_quality_run
from deed_ledger.infrastructure.observability.metrics import record_data_quality

SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.HIGH: 1, Severity.MEDIUM: 2}


def run_rules(snapshot: ContractSnapshot) -> List[LedgerException]:
    """Run every rule; a rule that fails is logged and skipped"""
    findings: List[LedgerException] = []
    for rule in RULES:
        try:
            findings.extend(rule(snapshot))
        except Exception:
            logging.exception(
                "Data-quality rule failed",
                extra={"rule": rule.__name__, "contract_id": snapshot.contract.id},
            )
    return findings


def _snapshot(db: Session, contract: Contract, payments: List[Payment]) -> ContractSnapshot:
    return ContractSnapshot(
        contract=contract,
        payments=payments,
        doc_types=AttachmentRepository(db).doc_types_for_contract(contract.id),
    )


def validate_all_contracts(db: Session) -> List[LedgerException]:
    """
    Evaluate every data-quality rule against every contract.

    Findings come back most severe first. Gauges per exception type are
    refreshed on each run.
    """
    start_time = time.time()

    payments_by_contract: Dict[int, List[Payment]] = defaultdict(list)
    for record in PaymentRepository(db).list_all():
        payments_by_contract[record.contract_id].append(payment_to_domain(record))

    contracts = [contract_to_domain(r) for r in ContractRepository(db).list_all()]
    findings: List[LedgerException] = []
    for contract in contracts:
        findings.extend(run_rules(_snapshot(db, contract, payments_by_contract.get(contract.id, []))))

    findings.sort(key=lambda f: SEVERITY_ORDER[f.severity])

    record_data_quality(f.type for f in findings)
    log_data_quality_run(len(contracts), len(findings), (time.time() - start_time) * 1000)
    return findings


def validate_contract(db: Session, contract_id: int) -> List[LedgerException]:
    """Findings for a single contract (empty when it does not exist)"""
    record = ContractRepository(db).get_by_id(contract_id)
    if record is None:
        return []
    payments = [payment_to_domain(p) for p in PaymentRepository(db).list_by_contract(contract_id)]
    findings = run_rules(_snapshot(db, contract_to_domain(record), payments))
    return sorted(findings, key=lambda f: SEVERITY_ORDER[f.severity])
