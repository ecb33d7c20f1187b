"""Unit tests for down-payment reconciliation"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from deed_ledger.domain.down_payment import (
    compute_effective_down_payment,
    find_down_payment,
    is_down_payment_memo,
)
from deed_ledger.domain.models import Payment, SaleType


def _payment(pid, day, principal, memo=None):
    return Payment(
        id=pid,
        contract_id=1,
        payment_date=day,
        amount_total=Decimal(principal),
        principal_amount=Decimal(principal),
        memo=memo,
    )


def test_memo_markers_case_insensitive():
    assert is_down_payment_memo("Down Payment - lot 12")
    assert is_down_payment_memo("pago de ENTRADA")
    assert not is_down_payment_memo("March installment")
    assert not is_down_payment_memo(None)
    assert not is_down_payment_memo("")


def test_find_down_payment_takes_first_match():
    payments = [
        _payment(1, date(2024, 1, 1), "300"),
        _payment(2, date(2024, 1, 2), "2000", memo="down payment"),
        _payment(3, date(2024, 1, 3), "100", memo="entrada extra"),
    ]
    assert find_down_payment(payments).id == 2
    assert find_down_payment(payments[:1]) is None


def test_detected_payment_wins_over_stated_field(direct_contract):
    payments = [_payment(7, date(2024, 1, 20), "3500", memo="Down payment")]
    dp = compute_effective_down_payment(direct_contract, payments)

    assert dp.amount == Decimal("3500")
    assert dp.payment_id == 7
    assert dp.date == date(2024, 1, 20)
    assert not dp.is_synthetic


def test_direct_cfd_synthesizes_within_period(direct_contract):
    dp = compute_effective_down_payment(direct_contract, [], date(2024, 1, 1), date(2024, 3, 31))

    assert dp.amount == Decimal("4000")
    assert dp.payment_id is None
    assert dp.is_synthetic


def test_no_synthesis_outside_period(direct_contract):
    dp = compute_effective_down_payment(direct_contract, [], date(2024, 4, 1), date(2024, 6, 30))
    assert dp.amount == Decimal("0")
    assert not dp.is_synthetic


def test_assumed_never_synthesizes(assumed_contract):
    dp = compute_effective_down_payment(assumed_contract, [])
    assert dp.amount == Decimal("0")


def test_cash_sale_never_synthesizes(direct_contract):
    dp = compute_effective_down_payment(replace(direct_contract, sale_type=SaleType.CASH), [])
    assert dp.amount == Decimal("0")
