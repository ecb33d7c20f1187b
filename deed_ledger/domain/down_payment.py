"""Down-payment reconciliation shared by every balance, gain and period report"""

from datetime import date
from typing import Iterable, Optional

from deed_ledger.domain.models import Contract, DownPayment, OriginType, Payment, SaleType
from deed_ledger.utils.date_utils import within
from deed_ledger.utils.money import ZERO

DOWN_PAYMENT_MEMO_MARKERS = ("down payment", "entrada")


def is_down_payment_memo(memo: Optional[str]) -> bool:
    if not memo:
        return False
    memo_lower = memo.lower()
    return any(marker in memo_lower for marker in DOWN_PAYMENT_MEMO_MARKERS)


def find_down_payment(payments: Iterable[Payment]) -> Optional[Payment]:
    """First payment whose memo marks it as the down payment"""
    for payment in payments:
        if is_down_payment_memo(payment.memo):
            return payment
    return None


def compute_effective_down_payment(
    contract: Contract,
    payments_in_scope: Iterable[Payment],
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> DownPayment:
    """
    Decide how a contract's down payment enters the numbers for a period.

    A down payment can arrive as the contract's stated field, as an ordinary
    payment row, or both. To count it exactly once:
    1. A payment whose memo contains "down payment" or "entrada" (any case)
       is the down payment; callers exclude payment_id from installment sums.
    2. Otherwise DIRECT CFD contracts synthesize the stated downPayment, but
       only when contract_date falls inside [period_start, period_end].
    3. ASSUMED contracts never synthesize: the stated field is record-keeping
       only, and the opening receivable already nets it out.

    Args:
        contract: Contract being evaluated
        payments_in_scope: Payments already filtered by payments_in_scope()
        period_start: Inclusive period start (None = open)
        period_end: Inclusive period end (None = open)

    Returns:
        DownPayment with amount, matching payment id (None when synthetic) and date
    """
    dp_payment = find_down_payment(payments_in_scope)
    if dp_payment is not None:
        return DownPayment(
            amount=dp_payment.principal_amount,
            payment_id=dp_payment.id,
            date=dp_payment.payment_date,
        )

    if (
        contract.origin_type == OriginType.DIRECT
        and contract.sale_type == SaleType.CFD
        and within(contract.contract_date, period_start, period_end)
    ):
        return DownPayment(
            amount=contract.down_payment or ZERO,
            payment_id=None,
            date=contract.contract_date,
        )

    return DownPayment(amount=ZERO, payment_id=None, date=contract.contract_date)
