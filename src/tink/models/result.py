"""
Result objects returned by the engine's produced surface.

Expected business conditions come back in ``error``; nothing here raises.
"""

from typing import Any, Optional

from pydantic import BaseModel

from tink.models.payment import PaymentRequirement
from tink.models.session import Merchant, TipSession
from tink.models.transaction import Transaction


class EngineFailure(BaseModel):
    kind: str  # "not_found" | "invalid_state" | "validation" | "facilitator" | "unauthorized" | "internal"
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class OperationResult(BaseModel):
    error: Optional[EngineFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PrepareResult(OperationResult):
    session: Optional[TipSession] = None
    merchant: Optional[Merchant] = None
    requirement: Optional[PaymentRequirement] = None


class VerifyResult(OperationResult):
    valid: bool = False
    invalid_reason: Optional[str] = None
    payer: Optional[str] = None


class SettleResult(OperationResult):
    success: bool = False
    settlement_ref: Optional[str] = None
    network_id: Optional[str] = None
    session: Optional[TipSession] = None
    transaction: Optional[Transaction] = None


class WebhookResult(OperationResult):
    event: Optional[str] = None
    session_id: Optional[str] = None
    applied: bool = False
    status: Optional[str] = None


class PaymentStatus(BaseModel):
    session: TipSession
    transaction: Optional[Transaction] = None
    explorer_url: Optional[str] = None
