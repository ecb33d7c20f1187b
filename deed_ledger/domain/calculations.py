"""Financial calculation engine - installment-sale method, receivables, ROI and IRR"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext
from typing import Iterable, List, Optional, Tuple

from deed_ledger.domain.down_payment import compute_effective_down_payment
from deed_ledger.domain.models import Contract, OriginType, Payment
from deed_ledger.utils.date_utils import within
from deed_ledger.utils.money import ZERO

HUNDRED = Decimal("100")
DAYS_PER_YEAR = Decimal("365")


@dataclass
class PeriodReceipts:
    """Cash attributed to one contract within a period"""

    down_payment: Decimal
    installment_principal: Decimal
    late_fees: Decimal
    dp_payment_id: Optional[int]
    payments: List[Payment]

    @property
    def principal_received(self) -> Decimal:
        return self.down_payment + self.installment_principal

    @property
    def cash_collected(self) -> Decimal:
        return self.principal_received + self.late_fees


def gross_profit(price: Decimal, cost_basis: Decimal) -> Decimal:
    return price - cost_basis


def gross_profit_percent(price: Decimal, cost_basis: Decimal) -> Decimal:
    """(price - cost) / price * 100; zero when price is not positive"""
    if price <= 0:
        return ZERO
    return (price - cost_basis) / price * HUNDRED


def gain_recognized(principal_received: Decimal, gp_percent: Decimal) -> Decimal:
    """
    Taxable gain carried by principal collected.

    Installment-sale method: every dollar of principal carries the same profit
    fraction as the contract as a whole.
    """
    return principal_received * gp_percent / HUNDRED


def roi(price: Decimal, cost_basis: Decimal) -> Decimal:
    """(price - cost) / cost * 100; zero when cost is not positive"""
    if cost_basis <= 0:
        return ZERO
    return (price - cost_basis) / cost_basis * HUNDRED


def payments_in_scope(contract: Contract, payments: Iterable[Payment]) -> List[Payment]:
    """
    Payments that belong to this contract's economics.

    ASSUMED contracts drop everything dated before transfer_date: those
    receipts went to the prior owner and are excluded from balance, gain and
    every period aggregate.
    """
    scoped = [p for p in payments if contract.id is None or p.contract_id == contract.id]
    if contract.origin_type == OriginType.ASSUMED and contract.transfer_date is not None:
        scoped = [p for p in scoped if p.payment_date >= contract.transfer_date]
    return scoped


def period_receipts(
    contract: Contract,
    payments: Iterable[Payment],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PeriodReceipts:
    """Down payment, installment principal and late fees received within [start, end]"""
    scoped = payments_in_scope(contract, payments)
    dp = compute_effective_down_payment(contract, scoped, start, end)
    in_period = [p for p in scoped if within(p.payment_date, start, end)]

    if dp.payment_id is not None:
        # Detected DP row only counts in the period it was actually received
        dp_received = dp.amount if any(p.id == dp.payment_id for p in in_period) else ZERO
    else:
        dp_received = dp.amount

    installment_principal = sum(
        (p.principal_amount for p in in_period if dp.payment_id is None or p.id != dp.payment_id),
        ZERO,
    )
    late_fees = sum((p.late_fee_amount for p in in_period), ZERO)

    return PeriodReceipts(
        down_payment=dp_received,
        installment_principal=installment_principal,
        late_fees=late_fees,
        dp_payment_id=dp.payment_id,
        payments=in_period,
    )


def originated_by(contract: Contract, as_of: date) -> bool:
    """Whether the current owner held the contract on as_of"""
    if contract.origin_type == OriginType.ASSUMED:
        start = contract.transfer_date or contract.contract_date
    else:
        start = contract.contract_date
    return start <= as_of


def receivable_balance(
    contract: Contract,
    payments: Iterable[Payment],
    as_of: Optional[date] = None,
) -> Decimal:
    """
    Outstanding financed amount owed by the buyer.

    - CASH: always 0, nothing is financed
    - DIRECT: contract_price - effective down payment - principal received
    - ASSUMED: opening_receivable - principal received on/after transfer_date

    With as_of, only payments dated on or before as_of count, and a contract
    not yet held on as_of carries no balance.
    """
    if contract.is_cash:
        return ZERO
    if as_of is not None and not originated_by(contract, as_of):
        return ZERO

    receipts = period_receipts(contract, payments, None, as_of)

    if contract.origin_type == OriginType.ASSUMED:
        opening = contract.opening_receivable or ZERO
        return opening - receipts.principal_received

    return contract.contract_price - receipts.principal_received


def irr_cash_flows(
    contract: Contract,
    payments: Iterable[Payment],
    as_of: Optional[date] = None,
) -> List[Tuple[date, Decimal]]:
    """
    Dated cash flows for IRR:
    - cost basis as outflow on contract_date
    - synthetic down payment as inflow on contract_date
    - each in-scope payment (principal + late fee) on its payment date
    - remaining positive receivable on the last payment date (or as_of)
    """
    payments = list(payments)
    scoped = payments_in_scope(contract, payments)
    flows: List[Tuple[date, Decimal]] = [(contract.contract_date, -contract.cost_basis)]

    dp = compute_effective_down_payment(contract, scoped)
    if dp.is_synthetic:
        flows.append((contract.contract_date, dp.amount))

    for payment in scoped:
        flows.append((payment.payment_date, payment.principal_amount + payment.late_fee_amount))

    balance = receivable_balance(contract, payments)
    if balance > 0:
        terminal = max(p.payment_date for p in scoped) if scoped else (as_of or date.today())
        flows.append((terminal, balance))

    return sorted(flows, key=lambda flow: flow[0])


def _npv(flows: List[Tuple[Decimal, Decimal]], rate: Decimal) -> Decimal:
    base = 1 + rate
    return sum((amount / base ** years for years, amount in flows), ZERO)


def _npv_derivative(flows: List[Tuple[Decimal, Decimal]], rate: Decimal) -> Decimal:
    base = 1 + rate
    return sum((-years * amount / base ** (years + 1) for years, amount in flows), ZERO)


def solve_irr(
    dated_flows: List[Tuple[date, Decimal]],
    tolerance: float = 1e-7,
    max_iterations: int = 100,
    min_rate: float = -0.99,
    max_rate: float = 10.0,
) -> Optional[Decimal]:
    """
    Annualized rate r with sum(cf / (1 + r) ** (days / 365)) == 0.

    Newton-Raphson from 10%, falling back to bisection over [min_rate, max_rate]
    when the derivative vanishes or an iterate leaves the bounded domain.
    Returns None for fewer than two flows, single-signed streams, or no root.
    """
    if len(dated_flows) < 2:
        return None
    if all(amount >= 0 for _, amount in dated_flows) or all(amount <= 0 for _, amount in dated_flows):
        return None

    first_date = min(flow_date for flow_date, _ in dated_flows)
    tol = Decimal(str(tolerance))
    low, high = Decimal(str(min_rate)), Decimal(str(max_rate))

    with localcontext() as ctx:
        ctx.prec = 28
        flows = [
            (Decimal((flow_date - first_date).days) / DAYS_PER_YEAR, amount)
            for flow_date, amount in dated_flows
        ]

        rate = Decimal("0.1")
        for _ in range(max_iterations):
            derivative = _npv_derivative(flows, rate)
            if abs(derivative) < Decimal("1e-12"):
                break
            new_rate = rate - _npv(flows, rate) / derivative
            if new_rate <= low or new_rate > high:
                break
            if abs(new_rate - rate) < tol:
                return new_rate
            rate = new_rate

        # Bisection fallback
        f_low = _npv(flows, low)
        f_high = _npv(flows, high)
        if f_low == 0:
            return low
        if f_high == 0:
            return high
        if (f_low > 0) == (f_high > 0):
            return None

        for _ in range(max_iterations):
            mid = (low + high) / 2
            f_mid = _npv(flows, mid)
            if f_mid == 0 or (high - low) / 2 < tol:
                return mid
            if (f_mid > 0) == (f_low > 0):
                low, f_low = mid, f_mid
            else:
                high = mid

    return None


def irr(
    contract: Contract,
    payments: Iterable[Payment],
    as_of: Optional[date] = None,
    **solver_options,
) -> Optional[Decimal]:
    """IRR as an annualized percentage (15.5 == 15.5%), or None when it cannot converge"""
    rate = solve_irr(irr_cash_flows(contract, payments, as_of), **solver_options)
    if rate is None:
        return None
    return (rate * HUNDRED).quantize(Decimal("0.01"))
