"""
tink-engine — tip sessions and x402 payment settlement.

Tip selection, USDC settlement through a facilitator, staff tip splits and
idempotent webhook reconciliation.
"""

from tink.engine import TipEngine, AsyncTipEngine
from tink.config import EngineConfig, CHAINS
from tink.errors import (
    TinkError,
    NotFoundError,
    InvalidStateError,
    ValidationError,
    FacilitatorError,
    UnauthorizedError,
    InternalError,
)
from tink.facilitator.http import HttpFacilitator
from tink.facilitator.local import LocalFacilitator
from tink.models.session import SessionStatus, TipSession, Merchant
from tink.models.webhook import WebhookEvent
from tink.signature import normalize_signature_v
from tink.store.memory import MemorySessionStore

__version__ = "0.1.0"
__all__ = [
    "TipEngine",
    "AsyncTipEngine",
    "EngineConfig",
    "CHAINS",
    "TinkError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "FacilitatorError",
    "UnauthorizedError",
    "InternalError",
    "HttpFacilitator",
    "LocalFacilitator",
    "SessionStatus",
    "TipSession",
    "Merchant",
    "WebhookEvent",
    "normalize_signature_v",
    "MemorySessionStore",
]
