"""Merchants and tip sessions."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    PENDING = "pending"
    TIP_SELECTED = "tip_selected"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_PROCESSING = "payment_processing"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"


TERMINAL_STATES = {SessionStatus.CONFIRMED, SessionStatus.FAILED, SessionStatus.EXPIRED}

# Statuses that lapse to EXPIRED once expires_at has passed
EXPIRABLE_STATES = {SessionStatus.PENDING, SessionStatus.TIP_SELECTED, SessionStatus.PAYMENT_PENDING}


class Merchant(BaseModel):
    id: str
    name: str
    slug: str
    wallet_address: str
    avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TipSession(BaseModel):
    id: str
    merchant_id: str
    bill_amount: Decimal
    tip_amount: Optional[Decimal] = None
    tip_percentage: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    currency: str = "USDC"
    status: SessionStatus = SessionStatus.PENDING
    memo: str
    payer_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def is_past_expiry(self, now: datetime) -> bool:
        return now > self.expires_at
