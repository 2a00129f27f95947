"""
Payment coordinator — the x402 prepare / verify / settle handshake.

``prepare`` turns a tipped session into a Payment Requirement, ``verify`` asks
the facilitator whether a signed authorization satisfies it, and ``settle``
executes it exactly once:

- the session moves to ``payment_processing`` before the facilitator is
  called, so an interrupted settlement is visible rather than silent;
- ``settle`` and the webhook reconciler share one lock per session id, and
  every status write is a compare-and-set;
- a Transaction is only created after a settlement reference comes back, and
  never twice for the same session.

The ``*_session`` methods are the produced surface: they never raise for
business conditions and return result objects carrying an ``EngineFailure``.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar
from urllib.parse import urlencode

from tink.config import EngineConfig
from tink.errors import (
    FacilitatorError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    TinkError,
    ValidationError,
)
from tink.facilitator.base import Facilitator
from tink.models.payment import AssetDomain, PaymentRequirement, SupportedKinds
from tink.models.result import OperationResult, PaymentStatus, PrepareResult, SettleResult, VerifyResult
from tink.models.session import Merchant, SessionStatus, TipSession
from tink.models.transaction import Transaction, TransactionFields
from tink.money import to_atomic_units
from tink.sessions import SessionLocks, SessionService, reject_terminal
from tink.store.base import SessionStore

logger = logging.getLogger(__name__)

S = SessionStatus
R = TypeVar("R", bound=OperationResult)


class PaymentCoordinator:
    def __init__(
        self,
        store: SessionStore,
        facilitator: Facilitator,
        config: Optional[EngineConfig] = None,
        sessions: Optional[SessionService] = None,
        locks: Optional[SessionLocks] = None,
    ):
        self._store = store
        self._facilitator = facilitator
        self._config = config or EngineConfig()
        self._sessions = sessions or SessionService(store, self._config)
        self.locks = locks or SessionLocks()

    # -- requirement -----------------------------------------------------

    def build_requirement(self, session: TipSession, merchant: Merchant) -> PaymentRequirement:
        """Deterministic in (session, merchant, config): prepare, verify and settle all rebuild it."""
        chain = self._config.chain
        return PaymentRequirement(
            x402_version=self._config.x402_version,
            scheme=self._config.scheme,
            network=chain.network,
            max_amount_required=str(to_atomic_units(session.total_amount, self._config.asset_decimals)),
            resource=f"/api/payments/settle/{session.id}",
            description=f"Tip payment to {merchant.name}",
            pay_to=merchant.wallet_address,
            max_timeout_seconds=self._config.max_timeout_seconds,
            asset=chain.usdc,
            extra=AssetDomain(name=self._config.asset_name, version=self._config.asset_version,
                              chain_id=chain.chain_id),
        )

    async def _payable(self, session_id: str) -> tuple[TipSession, Merchant]:
        """Load a session and its merchant, rejecting anything that cannot take payment work."""
        session = await self._sessions.get(session_id)
        reject_terminal(session)
        if session.status == S.PAYMENT_PROCESSING or self.locks.locked(session_id):
            raise InvalidStateError("SettlementInProgress", "Settlement in progress",
                                    details={"session_id": session_id})
        if session.total_amount is None:
            raise ValidationError("TipNotSelected", "Tip not selected yet", details={"session_id": session_id})
        merchant = await self._store.get_merchant(session.merchant_id)
        if merchant is None:
            raise NotFoundError("MerchantNotFound", "Merchant not found",
                                details={"merchant_id": session.merchant_id})
        return session, merchant

    # -- prepare ---------------------------------------------------------

    async def prepare(self, session_id: str) -> PrepareResult:
        session, merchant = await self._payable(session_id)
        requirement = self.build_requirement(session, merchant)
        if session.status == S.TIP_SELECTED:
            session = await self._sessions.transition(session, S.PAYMENT_PENDING)
        return PrepareResult(session=session, merchant=merchant, requirement=requirement)

    # -- verify ----------------------------------------------------------

    async def verify(self, session_id: str, payment_payload: str) -> VerifyResult:
        if not payment_payload:
            raise ValidationError("PaymentPayloadRequired", "paymentPayload is required")
        session, merchant = await self._payable(session_id)
        requirement = self.build_requirement(session, merchant)
        verdict = await self._facilitator.verify(payment_payload, requirement)
        return VerifyResult(valid=verdict.valid, invalid_reason=verdict.invalid_reason, payer=verdict.payer)

    # -- settle ----------------------------------------------------------

    async def settle(self, session_id: str, payment_payload: str, payer_address: str) -> SettleResult:
        if not payment_payload:
            raise ValidationError("PaymentPayloadRequired", "paymentPayload is required")
        if not payer_address:
            raise ValidationError("PayerAddressRequired", "payerAddress is required")

        async with self.locks.get(session_id):
            session = await self._sessions.get(session_id)
            if session.status == S.CONFIRMED:
                tx = await self._store.find_transaction_by_session(session_id)
                raise InvalidStateError(
                    "AlreadySettled", "Payment already confirmed",
                    details={"session_id": session_id,
                             "transaction_id": tx.id if tx else None,
                             "settlement_ref": tx.tx_hash if tx else None},
                )
            reject_terminal(session)
            if session.status == S.PAYMENT_PROCESSING:
                raise InvalidStateError("SettlementInProgress", "Settlement in progress",
                                        details={"session_id": session_id})
            if session.total_amount is None:
                raise ValidationError("TipNotSelected", "Tip not selected yet")
            if session.status != S.PAYMENT_PENDING:
                raise InvalidStateError("PaymentNotPrepared", "Call prepare before settling",
                                        details={"status": session.status.value})
            merchant = await self._store.get_merchant(session.merchant_id)
            if merchant is None:
                raise NotFoundError("MerchantNotFound", "Merchant not found")

            requirement = self.build_requirement(session, merchant)
            session = await self._sessions.transition(session, S.PAYMENT_PROCESSING, payer_address=payer_address)

            try:
                outcome = await self._facilitator.settle(payment_payload, requirement)
            except FacilitatorError as e:
                await self._mark_failed(session)
                logger.warning("settlement of %s failed at facilitator: %s", session_id, e.message)
                raise
            except Exception:
                logger.exception("settlement of %s raised unexpectedly", session_id)
                await self._mark_failed(session)
                raise

            if not outcome.success or not outcome.settlement_ref:
                await self._mark_failed(session)
                reason = outcome.error or ("Settlement returned no reference" if outcome.success else "Settlement failed")
                logger.warning("settlement of %s rejected: %s", session_id, reason)
                raise FacilitatorError("SettlementFailed", reason, details={"session_id": session_id})

            tx = await self.record_settlement(
                session, merchant, outcome.settlement_ref,
                outcome.network_id or requirement.network, payer_address,
            )
            session = await self._sessions.transition(session, S.CONFIRMED)
            logger.info("session %s settled: %s on %s", session_id, tx.tx_hash, tx.network_id)
            return SettleResult(success=True, settlement_ref=tx.tx_hash, network_id=tx.network_id,
                                session=session, transaction=tx)

    async def _mark_failed(self, session: TipSession) -> None:
        """Move a processing session to failed. A failed write is logged, never raised over the caller's error."""
        try:
            await self._sessions.transition(session, S.FAILED)
        except Exception:
            logger.exception("could not mark session %s failed", session.id)

    async def record_settlement(
        self,
        session: TipSession,
        merchant: Merchant,
        settlement_ref: str,
        network_id: str,
        payer_address: str,
    ) -> Transaction:
        """Create and confirm the session's Transaction unless one already exists."""
        tx = await self._store.find_transaction_by_session(session.id)
        if tx is None:
            tx = await self._store.create_transaction(TransactionFields(
                session_id=session.id,
                merchant_id=session.merchant_id,
                payer_address=payer_address,
                recipient_address=merchant.wallet_address,
                bill_amount=session.bill_amount,
                tip_amount=session.tip_amount,
                total_amount=session.total_amount,
                currency=session.currency,
                tx_hash=settlement_ref,
                network_id=network_id,
            ))
        return await self._store.confirm_transaction(tx.id)

    # -- read side -------------------------------------------------------

    async def payment_status(self, session_id: str) -> PaymentStatus:
        session = await self._sessions.get(session_id)
        tx = await self._store.find_transaction_by_session(session_id)
        return PaymentStatus(session=session, transaction=tx,
                             explorer_url=self.explorer_url(tx.tx_hash) if tx else None)

    def explorer_url(self, tx_hash: str) -> str:
        return f"{self._config.chain.explorer}/tx/{tx_hash}"

    async def payment_url(self, session_id: str, base_url: str) -> str:
        session = await self._sessions.get(session_id)
        merchant = await self._sessions.find_merchant(session.merchant_id)
        params = urlencode({
            "merchant": merchant.slug,
            "bill": str(session.bill_amount),
            "tip": str(session.tip_amount or 0),
            "total": str(session.total_amount or session.bill_amount),
            "session": session.id,
            "payTo": merchant.wallet_address,
        })
        return f"{base_url.rstrip('/')}/pay?{params}"

    async def supported(self) -> dict:
        kinds: SupportedKinds = await self._facilitator.supported()
        chain = self._config.chain
        return {**kinds.model_dump(), "chain_id": chain.chain_id, "network": chain.network,
                "explorer": chain.explorer}

    # -- produced surface ------------------------------------------------

    async def prepare_session(self, session_id: str) -> PrepareResult:
        return await self._guard(PrepareResult, "prepare", session_id, lambda: self.prepare(session_id))

    async def verify_session(self, session_id: str, payment_payload: str) -> VerifyResult:
        return await self._guard(VerifyResult, "verify", session_id,
                                 lambda: self.verify(session_id, payment_payload))

    async def settle_session(self, session_id: str, payment_payload: str, payer_address: str) -> SettleResult:
        result = await self._guard(SettleResult, "settle", session_id,
                                   lambda: self.settle(session_id, payment_payload, payer_address))
        if result.error and result.error.code == "AlreadySettled":
            # Hand back the outcome that was recorded the first time.
            tx = await self._store.find_transaction_by_session(session_id)
            if tx is not None:
                result.settlement_ref = tx.tx_hash
                result.network_id = tx.network_id
                result.transaction = tx
        return result

    async def _guard(self, result_cls: type[R], op: str, session_id: str,
                     call: Callable[[], Awaitable[R]]) -> R:
        try:
            return await call()
        except TinkError as e:
            logger.info("%s %s: %s (%s)", op, session_id, e.code, e.message)
            return result_cls(error=e.to_failure())
        except Exception:
            logger.exception("%s %s failed with an internal error", op, session_id)
            return result_cls(error=InternalError(f"Failed to {op} payment").to_failure())
