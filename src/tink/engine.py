"""
AsyncTipEngine / TipEngine — one object wiring store, facilitator and services.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional, Union

from tink.config import EngineConfig
from tink.disputes import DisputeService
from tink.facilitator.base import Facilitator
from tink.facilitator.http import HttpFacilitator
from tink.facilitator.local import LocalFacilitator
from tink.models.dispute import Dispute
from tink.models.result import PaymentStatus, PrepareResult, SettleResult, VerifyResult, WebhookResult
from tink.models.session import TipSession, utc_now
from tink.models.split import SplitShare, SplitSummary
from tink.money import Amount
from tink.payments import PaymentCoordinator
from tink.sessions import SessionLocks, SessionService
from tink.splits import merchant_tip_split, update_split_config
from tink.store.base import SessionStore
from tink.store.memory import MemorySessionStore
from tink.tips import TipOptions, tip_options
from tink.webhooks import WebhookReconciler


def _default_facilitator(config: EngineConfig) -> Facilitator:
    if config.facilitator_url:
        return HttpFacilitator(config.facilitator_url, token=config.facilitator_token)
    return LocalFacilitator(config)


class AsyncTipEngine:
    """Async engine (primary)."""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        facilitator: Optional[Facilitator] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or EngineConfig()
        self.store = store or MemorySessionStore(clock=clock)
        self.facilitator = facilitator or _default_facilitator(self.config)

        self.sessions = SessionService(self.store, self.config, clock=clock)
        self.payments = PaymentCoordinator(self.store, self.facilitator, self.config,
                                           sessions=self.sessions, locks=SessionLocks())
        self.webhooks = WebhookReconciler(self.store, self.payments, self.config, sessions=self.sessions)
        self.disputes = DisputeService(self.store, sessions=self.sessions)

    # Sessions

    async def create_session(self, merchant_ref: str, bill_amount: Amount,
                             currency: Optional[str] = None) -> TipSession:
        return await self.sessions.create(merchant_ref, bill_amount, currency)

    async def get_session(self, session_id: str) -> TipSession:
        return await self.sessions.get(session_id)

    async def select_tip(self, session_id: str, tip_amount: Optional[Amount] = None,
                         tip_percentage: Optional[Amount] = None) -> TipSession:
        return await self.sessions.select_tip(session_id, tip_amount, tip_percentage)

    async def cancel_session(self, session_id: str) -> TipSession:
        return await self.sessions.cancel(session_id)

    # Payments

    async def prepare_session(self, session_id: str) -> PrepareResult:
        return await self.payments.prepare_session(session_id)

    async def verify_session(self, session_id: str, payment_payload: str) -> VerifyResult:
        return await self.payments.verify_session(session_id, payment_payload)

    async def settle_session(self, session_id: str, payment_payload: str, payer_address: str) -> SettleResult:
        return await self.payments.settle_session(session_id, payment_payload, payer_address)

    async def payment_status(self, session_id: str) -> PaymentStatus:
        return await self.payments.payment_status(session_id)

    async def payment_url(self, session_id: str, base_url: str) -> str:
        return await self.payments.payment_url(session_id, base_url)

    async def supported(self) -> dict:
        return await self.payments.supported()

    async def handle_webhook(self, raw_body: Union[str, bytes], signature: Optional[str] = None) -> WebhookResult:
        return await self.webhooks.handle(raw_body, signature)

    # Splits and tips

    async def tip_split(self, merchant_ref: str, tip_amount: Amount) -> SplitSummary:
        return await merchant_tip_split(self.store, merchant_ref, tip_amount)

    async def update_split_config(self, merchant_id: str, shares: list[SplitShare]) -> list[SplitShare]:
        return await update_split_config(self.store, merchant_id, shares)

    @staticmethod
    def tip_options(bill_amount: Amount) -> TipOptions:
        return tip_options(bill_amount)

    # Disputes

    async def create_dispute(self, session_id: str, reason: str, details: str, submitted_by: str) -> Dispute:
        return await self.disputes.create(session_id, reason, details, submitted_by)

    async def list_disputes(self, merchant_ref: str) -> list[Dispute]:
        return await self.disputes.list_for_merchant(merchant_ref)

    async def update_dispute(self, dispute_id: str, status: str, resolution: Optional[str] = None) -> Dispute:
        return await self.disputes.update_status(dispute_id, status, resolution)

    async def close(self) -> None:
        await self.facilitator.close()


class TipEngine:
    """Sync wrapper around AsyncTipEngine. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._async = AsyncTipEngine(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def config(self) -> EngineConfig:
        return self._async.config

    @property
    def store(self) -> SessionStore:
        return self._async.store

    def create_session(self, merchant_ref: str, bill_amount: Amount, currency: Optional[str] = None) -> TipSession:
        return self._run(self._async.create_session(merchant_ref, bill_amount, currency))

    def get_session(self, session_id: str) -> TipSession:
        return self._run(self._async.get_session(session_id))

    def select_tip(self, session_id: str, **kwargs: Any) -> TipSession:
        return self._run(self._async.select_tip(session_id, **kwargs))

    def cancel_session(self, session_id: str) -> TipSession:
        return self._run(self._async.cancel_session(session_id))

    def prepare_session(self, session_id: str) -> PrepareResult:
        return self._run(self._async.prepare_session(session_id))

    def verify_session(self, session_id: str, payment_payload: str) -> VerifyResult:
        return self._run(self._async.verify_session(session_id, payment_payload))

    def settle_session(self, session_id: str, payment_payload: str, payer_address: str) -> SettleResult:
        return self._run(self._async.settle_session(session_id, payment_payload, payer_address))

    def payment_status(self, session_id: str) -> PaymentStatus:
        return self._run(self._async.payment_status(session_id))

    def payment_url(self, session_id: str, base_url: str) -> str:
        return self._run(self._async.payment_url(session_id, base_url))

    def supported(self) -> dict:
        return self._run(self._async.supported())

    def handle_webhook(self, raw_body: Union[str, bytes], signature: Optional[str] = None) -> WebhookResult:
        return self._run(self._async.handle_webhook(raw_body, signature))

    def tip_split(self, merchant_ref: str, tip_amount: Amount) -> SplitSummary:
        return self._run(self._async.tip_split(merchant_ref, tip_amount))

    def create_dispute(self, session_id: str, reason: str, details: str, submitted_by: str) -> Dispute:
        return self._run(self._async.create_dispute(session_id, reason, details, submitted_by))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()

    tip_options = staticmethod(AsyncTipEngine.tip_options)
