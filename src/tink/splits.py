"""
Split engine — proportional distribution of a tip across named shares.

Each share is rounded to the cent on its own. Nothing rebalances the
remainder, so the summed allocations can drift from the tip by up to a cent
per share; callers must treat the per-share figures as informational, not as
accounting ledger entries.
"""

from decimal import Decimal
from typing import Iterable

from tink.errors import NotFoundError, ValidationError
from tink.models.split import SplitAllocation, SplitShare, SplitSummary
from tink.money import HUNDRED, Amount, round_cents, to_decimal
from tink.store.base import SessionStore

SUM_TOLERANCE = Decimal("0.01")


def split_tip(tip_amount: Amount, shares: Iterable[SplitShare]) -> list[SplitAllocation]:
    tip = to_decimal(tip_amount)
    return [
        SplitAllocation(
            name=share.name,
            percentage=share.percentage,
            amount=round_cents(tip * share.percentage / HUNDRED),
            wallet_address=share.wallet_address,
        )
        for share in shares
    ]


def summarize_split(tip_amount: Amount, shares: Iterable[SplitShare]) -> SplitSummary:
    tip = to_decimal(tip_amount)
    allocations = split_tip(tip, shares)
    return SplitSummary(tip_amount=tip, splits=allocations, total=sum((a.amount for a in allocations), Decimal(0)))


def validate_split_config(shares: list[SplitShare]) -> None:
    """Raise ``ValidationError`` unless ``shares`` is a persistable configuration."""
    if not shares:
        raise ValidationError("EmptySplitConfig", "At least one split is required")

    total = sum((s.percentage for s in shares), Decimal(0))
    if abs(total - HUNDRED) > SUM_TOLERANCE:
        raise ValidationError(
            "SplitPercentageSum", f"Split percentages must sum to 100% (currently {total}%)",
            details={"total": str(total)},
        )

    for share in shares:
        if not share.name or not share.name.strip():
            raise ValidationError("SplitNameRequired", "Each split must have a name")
        if share.percentage < 0 or share.percentage > HUNDRED:
            raise ValidationError("SplitPercentageRange", "Percentage must be between 0 and 100",
                                  details={"name": share.name, "percentage": str(share.percentage)})


def default_split_config() -> list[SplitShare]:
    return [
        SplitShare(name="Front Of House", percentage=Decimal(60)),
        SplitShare(name="Back Of House", percentage=Decimal(30)),
        SplitShare(name="Bar", percentage=Decimal(10)),
    ]


def format_split_display(tip_amount: Amount, allocations: list[SplitAllocation]) -> str:
    tip = round_cents(to_decimal(tip_amount))
    lines = [f"{a.name}: ${a.amount:.2f} ({a.percentage.normalize():f}%)" for a in allocations]
    return f"${tip:.2f} tip split:\n" + "\n".join(lines)


async def merchant_tip_split(store: SessionStore, merchant_ref: str, tip_amount: Amount) -> SplitSummary:
    """Split ``tip_amount`` using the stored configuration of a merchant (id or slug)."""
    tip = to_decimal(tip_amount)
    if not tip.is_finite() or tip <= 0:
        raise ValidationError("InvalidTip", "Valid tipAmount is required")
    merchant = await store.get_merchant(merchant_ref) or await store.find_merchant_by_slug(merchant_ref)
    if merchant is None:
        raise NotFoundError("MerchantNotFound", "Merchant not found", details={"merchant": merchant_ref})
    shares = await store.get_split_config(merchant.id)
    return summarize_split(tip, shares)


async def update_split_config(
    store: SessionStore, merchant_id: str, shares: list[SplitShare],
) -> list[SplitShare]:
    validate_split_config(shares)
    if await store.get_merchant(merchant_id) is None:
        raise NotFoundError("MerchantNotFound", "Merchant not found", details={"merchant": merchant_id})
    return await store.set_split_config(merchant_id, shares)
