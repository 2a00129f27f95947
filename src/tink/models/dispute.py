"""Dispute models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class DisputeReason(str, Enum):
    INCORRECT_AMOUNT = "incorrect_amount"
    UNAUTHORIZED_TRANSACTION = "unauthorized_transaction"
    SERVICE_NOT_RECEIVED = "service_not_received"
    DUPLICATE_CHARGE = "duplicate_charge"
    OTHER = "other"


REASON_LABELS = {
    DisputeReason.INCORRECT_AMOUNT: "Incorrect Amount",
    DisputeReason.UNAUTHORIZED_TRANSACTION: "Unauthorized Transaction",
    DisputeReason.SERVICE_NOT_RECEIVED: "Service Not Received",
    DisputeReason.DUPLICATE_CHARGE: "Duplicate Charge",
    DisputeReason.OTHER: "Other",
}


class DisputeStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Dispute(BaseModel):
    id: str
    session_id: str
    merchant_id: str
    reason: DisputeReason
    details: str
    status: DisputeStatus = DisputeStatus.PENDING
    submitted_by: str
    resolution: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
