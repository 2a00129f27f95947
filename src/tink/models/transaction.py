"""One settlement, tied 1:1 to a confirmed session."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TransactionFields(BaseModel):
    """Everything the store needs to create a Transaction row."""
    session_id: str
    merchant_id: str
    payer_address: str
    recipient_address: str
    bill_amount: Decimal
    tip_amount: Decimal
    total_amount: Decimal
    currency: str
    tx_hash: str
    network_id: str


class Transaction(TransactionFields):
    id: str
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: datetime
    confirmed_at: Optional[datetime] = None
