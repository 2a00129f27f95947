"""
Tip session state machine.

    pending -> tip_selected -> payment_pending -> payment_processing -> confirmed | failed
                                                 (any of the first three) -> expired

Expiry is observed lazily: every read through ``SessionService.get`` checks
``expires_at`` and persists ``expired`` for sessions that have lapsed. All
status writes go through ``transition``, which checks the table below and
issues a compare-and-set against the store.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from typing import Callable, Optional

from tink.config import EngineConfig
from tink.errors import InvalidStateError, NotFoundError
from tink.models.session import EXPIRABLE_STATES, Merchant, SessionStatus, TipSession, utc_now
from tink.money import Amount
from tink.store.base import SessionStore
from tink.tips import resolve_tip, validate_bill

logger = logging.getLogger(__name__)

S = SessionStatus

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    S.PENDING: frozenset({S.TIP_SELECTED, S.EXPIRED}),
    S.TIP_SELECTED: frozenset({S.TIP_SELECTED, S.PAYMENT_PENDING, S.EXPIRED}),
    S.PAYMENT_PENDING: frozenset({S.PAYMENT_PROCESSING, S.EXPIRED}),
    S.PAYMENT_PROCESSING: frozenset({S.CONFIRMED, S.FAILED}),
    S.CONFIRMED: frozenset(),
    S.FAILED: frozenset(),
    S.EXPIRED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: SessionStatus, target: SessionStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStateError(
            "IllegalTransition", f"Cannot move session from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )


def reject_terminal(session: TipSession) -> None:
    """Raise the caller-facing error for a session that accepts no more payment work."""
    if not session.is_terminal:
        return
    if session.status == S.EXPIRED:
        raise InvalidStateError("Expired", "Session has expired", details={"session_id": session.id})
    if session.status == S.CONFIRMED:
        raise InvalidStateError("AlreadySettled", "Payment already completed", details={"session_id": session.id})
    if session.status == S.FAILED:
        raise InvalidStateError("SessionFailed", "Payment for this session failed",
                                details={"session_id": session.id})


class SessionLocks:
    """Per-session asyncio locks. Entries disappear once nobody holds a reference."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def locked(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()


class SessionService:
    def __init__(
        self,
        store: SessionStore,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._config = config or EngineConfig()
        self._clock = clock

    async def create(self, merchant_ref: str, bill_amount: Amount, currency: Optional[str] = None) -> TipSession:
        """Open a session for a merchant (id or slug)."""
        bill = validate_bill(bill_amount)
        merchant = await self.find_merchant(merchant_ref)
        session = await self._store.create(
            merchant.id, bill, currency or self._config.currency, self._config.session_ttl_seconds,
        )
        logger.info("session %s created for %s: bill=%s memo=%s", session.id, merchant.id, bill, session.memo)
        return session

    async def get(self, session_id: str) -> TipSession:
        session = await self._store.get(session_id)
        if session is None:
            raise NotFoundError("SessionNotFound", "Session not found", details={"session_id": session_id})
        if session.status in EXPIRABLE_STATES and session.is_past_expiry(self._clock()):
            try:
                session = await self.transition(session, S.EXPIRED)
            except InvalidStateError:
                # Raced with another writer; report whatever won.
                return await self.get(session_id)
        return session

    async def find_merchant(self, merchant_ref: str) -> Merchant:
        merchant = await self._store.get_merchant(merchant_ref)
        if merchant is None:
            merchant = await self._store.find_merchant_by_slug(merchant_ref)
        if merchant is None:
            raise NotFoundError("MerchantNotFound", "Merchant not found", details={"merchant": merchant_ref})
        return merchant

    async def select_tip(
        self,
        session_id: str,
        tip_amount: Optional[Amount] = None,
        tip_percentage: Optional[Amount] = None,
    ) -> TipSession:
        session = await self.get(session_id)
        reject_terminal(session)
        if session.status not in (S.PENDING, S.TIP_SELECTED):
            raise InvalidStateError("PaymentInProgress", "Tip can no longer be changed",
                                    details={"status": session.status.value})

        selection = resolve_tip(session.bill_amount, tip_amount, tip_percentage)
        updated = await self._store.set_tip(session.id, selection.tip_amount, selection.tip_percentage)
        logger.info("session %s tip selected: %s (%s%%) total=%s",
                    session.id, selection.tip_amount, selection.tip_percentage, updated.total_amount)
        return updated

    async def cancel(self, session_id: str) -> TipSession:
        session = await self.get(session_id)
        if session.status == S.CONFIRMED:
            raise InvalidStateError("AlreadySettled", "Cannot cancel completed payment")
        if session.status not in EXPIRABLE_STATES:
            raise InvalidStateError("CannotCancel", f"Cannot cancel a session that is {session.status.value}")
        return await self.transition(session, S.EXPIRED)

    async def transition(
        self, session: TipSession, target: SessionStatus, payer_address: Optional[str] = None,
    ) -> TipSession:
        ensure_transition(session.status, target)
        updated = await self._store.set_status(session.id, target, payer_address=payer_address,
                                               expected=session.status)
        logger.info("session %s: %s -> %s", session.id, session.status.value, target.value)
        return updated
