"""Tip arithmetic."""

from decimal import Decimal

import pytest

from tink.errors import ValidationError
from tink.tips import resolve_tip, tip_options, validate_bill


def test_percentage_derives_amount():
    sel = resolve_tip(Decimal("10.00"), tip_percentage=15)
    assert sel.tip_amount == Decimal("1.50")
    assert sel.total_amount == Decimal("11.50")


def test_amount_derives_percentage():
    sel = resolve_tip(Decimal("42.50"), tip_amount="5")
    assert sel.tip_amount == Decimal("5.00")
    assert sel.tip_percentage == Decimal("11.8")


def test_rounding_is_half_up():
    sel = resolve_tip(Decimal("10.10"), tip_percentage=15)  # 1.515
    assert sel.tip_amount == Decimal("1.52")


def test_zero_tip_allowed():
    sel = resolve_tip(Decimal("20"), tip_amount=0)
    assert sel.total_amount == Decimal("20")


def test_agreeing_pair_accepted():
    sel = resolve_tip(Decimal("10.00"), tip_amount="1.50", tip_percentage=15)
    assert sel.tip_amount == Decimal("1.50")


@pytest.mark.parametrize("kwargs,code", [
    ({}, "TipRequired"),
    ({"tip_amount": -1}, "InvalidTip"),
    ({"tip_percentage": "abc"}, "InvalidTip"),
    ({"tip_amount": "2.00", "tip_percentage": 15}, "AmbiguousTip"),
])
def test_rejects(kwargs, code):
    with pytest.raises(ValidationError) as exc:
        resolve_tip(Decimal("10.00"), **kwargs)
    assert exc.value.code == code


@pytest.mark.parametrize("bill", [0, -5, "nope", float("inf")])
def test_invalid_bill(bill):
    with pytest.raises(ValidationError) as exc:
        validate_bill(bill)
    assert exc.value.code == "InvalidBillAmount"


def test_tip_options():
    opts = tip_options("42.50")
    assert [o.percentage for o in opts.options] == [10, 15, 18, 20, 25]
    assert opts.options[2].amount == Decimal("7.65")
    assert opts.round_up.amount == Decimal("43")
    assert opts.round_up.tip_amount == Decimal("0.50")


def test_round_up_on_whole_bill_adds_nothing():
    assert tip_options(30).round_up.tip_amount == Decimal("0.00")
