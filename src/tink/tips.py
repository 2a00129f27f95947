"""Tip arithmetic: resolving a tip selection and the preset options shown to payers."""

from decimal import ROUND_CEILING, Decimal
from typing import Optional

from pydantic import BaseModel

from tink.errors import ValidationError
from tink.money import HUNDRED, Amount, round_cents, round_tenth, to_decimal

PRESET_PERCENTAGES = (10, 15, 18, 20, 25)


class TipSelection(BaseModel):
    tip_amount: Decimal
    tip_percentage: Decimal
    total_amount: Decimal


class TipOption(BaseModel):
    percentage: Decimal
    amount: Decimal
    total: Decimal


class RoundUpOption(BaseModel):
    amount: Decimal
    tip_amount: Decimal
    total: Decimal


class TipOptions(BaseModel):
    bill_amount: Decimal
    options: list[TipOption]
    round_up: RoundUpOption


def validate_bill(bill_amount: Amount) -> Decimal:
    bill = to_decimal(bill_amount)
    if not bill.is_finite() or bill <= 0:
        raise ValidationError("InvalidBillAmount", "billAmount must be greater than 0",
                              details={"bill_amount": str(bill_amount)})
    return round_cents(bill)


def resolve_tip(
    bill_amount: Decimal,
    tip_amount: Optional[Amount] = None,
    tip_percentage: Optional[Amount] = None,
) -> TipSelection:
    """Derive the missing half of a tip selection from the bill.

    Percentage only: amount is rounded to cents. Amount only: percentage is
    rounded to one decimal place. Both: the pair must agree.
    """
    if tip_amount is None and tip_percentage is None:
        raise ValidationError("TipRequired", "Valid tipAmount or tipPercentage is required")

    pct = to_decimal(tip_percentage) if tip_percentage is not None else None
    amount = to_decimal(tip_amount) if tip_amount is not None else None
    for value in (pct, amount):
        if value is not None and (not value.is_finite() or value < 0):
            raise ValidationError("InvalidTip", "Tip must be a finite, non-negative number")

    if amount is None:
        amount = round_cents(bill_amount * pct / HUNDRED)
    elif pct is None:
        amount = round_cents(amount)
        pct = round_tenth(amount / bill_amount * HUNDRED)
    else:
        amount = round_cents(amount)
        if round_cents(bill_amount * pct / HUNDRED) != amount:
            raise ValidationError(
                "AmbiguousTip", "tipAmount and tipPercentage disagree",
                details={"tip_amount": str(amount), "tip_percentage": str(pct)},
            )

    return TipSelection(tip_amount=amount, tip_percentage=pct, total_amount=bill_amount + amount)


def tip_options(bill_amount: Amount) -> TipOptions:
    bill = validate_bill(bill_amount)
    options = []
    for pct in PRESET_PERCENTAGES:
        amount = round_cents(bill * Decimal(pct) / HUNDRED)
        options.append(TipOption(percentage=Decimal(pct), amount=amount, total=bill + amount))

    round_total = bill.to_integral_value(rounding=ROUND_CEILING)
    return TipOptions(
        bill_amount=bill,
        options=options,
        round_up=RoundUpOption(amount=round_total, tip_amount=round_cents(round_total - bill), total=round_total),
    )
