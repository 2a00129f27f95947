"""
Tip split models.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class SplitShare(BaseModel):
    """One named share of a merchant's tip split configuration."""
    name: str
    percentage: Decimal
    wallet_address: Optional[str] = None


class SplitAllocation(BaseModel):
    name: str
    percentage: Decimal
    amount: Decimal
    wallet_address: Optional[str] = None


class SplitSummary(BaseModel):
    """Per-share amounts for a tip.

    ``total`` is the sum of independently rounded shares and may differ from
    ``tip_amount`` by up to a cent per share. It is informational, not an
    accounting ledger entry.
    """
    tip_amount: Decimal
    splits: list[SplitAllocation]
    total: Decimal
