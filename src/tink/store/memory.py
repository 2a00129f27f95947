"""
In-memory Session Store.

Every method runs without awaiting anything, so each call is atomic on the
event loop and ``set_status(expected=...)`` is a real compare-and-set.
Records are copied on the way in and out; callers never hold live rows.
"""

import secrets
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from tink.errors import InvalidStateError, NotFoundError
from tink.models.dispute import Dispute, DisputeReason, DisputeStatus
from tink.models.session import Merchant, SessionStatus, TipSession, utc_now
from tink.models.split import SplitShare
from tink.models.transaction import Transaction, TransactionFields, TransactionStatus
from tink.splits import default_split_config
from tink.store.base import SessionStore

DEMO_MERCHANT_ID = "merchant_demo_cafe"
DEMO_WALLET = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class MemorySessionStore(SessionStore):
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._merchants: dict[str, Merchant] = {}
        self._splits: dict[str, list[SplitShare]] = {}
        self._sessions: dict[str, TipSession] = {}
        self._memos: set[str] = set()
        self._transactions: dict[str, Transaction] = {}
        self._tx_by_session: dict[str, str] = {}
        self._disputes: dict[str, Dispute] = {}

    def _new_memo(self) -> str:
        while True:
            memo = f"Tink-{secrets.token_hex(4).upper()}"
            if memo not in self._memos:
                self._memos.add(memo)
                return memo

    def _session(self, session_id: str) -> TipSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("SessionNotFound", "Session not found", details={"session_id": session_id})
        return session

    # -- sessions --------------------------------------------------------

    async def get(self, session_id: str) -> Optional[TipSession]:
        session = self._sessions.get(session_id)
        return session.model_copy() if session else None

    async def create(self, merchant_id: str, bill_amount: Decimal, currency: str,
                     ttl_seconds: int) -> TipSession:
        now = self._clock()
        session = TipSession(
            id=f"session_{uuid.uuid4()}",
            merchant_id=merchant_id,
            bill_amount=bill_amount,
            currency=currency,
            status=SessionStatus.PENDING,
            memo=self._new_memo(),
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        self._sessions[session.id] = session
        return session.model_copy()

    async def set_tip(self, session_id: str, tip_amount: Decimal, tip_pct: Decimal) -> TipSession:
        current = self._session(session_id)
        updated = current.model_copy(update={
            "tip_amount": tip_amount,
            "tip_percentage": tip_pct,
            "total_amount": current.bill_amount + tip_amount,
            "status": SessionStatus.TIP_SELECTED,
            "updated_at": self._clock(),
        })
        self._sessions[session_id] = updated
        return updated.model_copy()

    async def set_status(
        self,
        session_id: str,
        status: SessionStatus,
        payer_address: Optional[str] = None,
        expected: Optional[SessionStatus] = None,
    ) -> TipSession:
        current = self._session(session_id)
        if expected is not None and current.status != expected:
            raise InvalidStateError(
                "StatusConflict",
                f"Session is {current.status.value}, expected {expected.value}",
                details={"session_id": session_id, "status": current.status.value},
            )
        changes: dict = {"status": status, "updated_at": self._clock()}
        if payer_address:
            changes["payer_address"] = payer_address
        updated = current.model_copy(update=changes)
        self._sessions[session_id] = updated
        return updated.model_copy()

    # -- transactions ----------------------------------------------------

    async def create_transaction(self, fields: TransactionFields) -> Transaction:
        if fields.session_id in self._tx_by_session:
            raise InvalidStateError("TransactionExists", "Session already has a transaction",
                                    details={"session_id": fields.session_id})
        tx = Transaction(
            id=f"tx_{uuid.uuid4()}",
            status=TransactionStatus.PENDING,
            created_at=self._clock(),
            **fields.model_dump(),
        )
        self._transactions[tx.id] = tx
        self._tx_by_session[tx.session_id] = tx.id
        return tx.model_copy()

    async def confirm_transaction(self, transaction_id: str) -> Transaction:
        tx = self._transactions.get(transaction_id)
        if tx is None:
            raise NotFoundError("TransactionNotFound", "Transaction not found",
                                details={"transaction_id": transaction_id})
        if tx.status != TransactionStatus.CONFIRMED:
            tx = tx.model_copy(update={"status": TransactionStatus.CONFIRMED, "confirmed_at": self._clock()})
            self._transactions[transaction_id] = tx
        return tx.model_copy()

    async def find_transaction_by_session(self, session_id: str) -> Optional[Transaction]:
        tx_id = self._tx_by_session.get(session_id)
        return self._transactions[tx_id].model_copy() if tx_id else None

    # -- merchants and split configuration ---------------------------------

    async def get_merchant(self, merchant_id: str) -> Optional[Merchant]:
        merchant = self._merchants.get(merchant_id)
        return merchant.model_copy() if merchant else None

    async def find_merchant_by_slug(self, slug: str) -> Optional[Merchant]:
        for merchant in self._merchants.values():
            if merchant.slug == slug:
                return merchant.model_copy()
        return None

    async def save_merchant(self, name: str, slug: str, wallet_address: str,
                            avatar: Optional[str] = None, merchant_id: Optional[str] = None) -> Merchant:
        now = self._clock()
        existing = self._merchants.get(merchant_id) if merchant_id else None
        merchant = Merchant(
            id=merchant_id or f"merchant_{uuid.uuid4()}",
            name=name,
            slug=slug,
            wallet_address=wallet_address,
            avatar=avatar,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self._merchants[merchant.id] = merchant
        self._splits.setdefault(merchant.id, [])
        return merchant.model_copy()

    async def get_split_config(self, merchant_id: str) -> list[SplitShare]:
        return [s.model_copy() for s in self._splits.get(merchant_id, [])]

    async def set_split_config(self, merchant_id: str, shares: list[SplitShare]) -> list[SplitShare]:
        self._splits[merchant_id] = [s.model_copy() for s in shares]
        return await self.get_split_config(merchant_id)

    # -- disputes --------------------------------------------------------

    async def create_dispute(self, session_id: str, merchant_id: str, reason: DisputeReason,
                             details: str, submitted_by: str) -> Dispute:
        now = self._clock()
        dispute = Dispute(
            id=f"dispute_{uuid.uuid4()}",
            session_id=session_id,
            merchant_id=merchant_id,
            reason=reason,
            details=details,
            status=DisputeStatus.PENDING,
            submitted_by=submitted_by,
            created_at=now,
            updated_at=now,
        )
        self._disputes[dispute.id] = dispute
        return dispute.model_copy()

    async def get_dispute(self, dispute_id: str) -> Optional[Dispute]:
        dispute = self._disputes.get(dispute_id)
        return dispute.model_copy() if dispute else None

    async def list_disputes(self, merchant_id: str) -> list[Dispute]:
        rows = [d for d in self._disputes.values() if d.merchant_id == merchant_id]
        return [d.model_copy() for d in reversed(sorted(rows, key=lambda d: d.created_at))]

    async def update_dispute(self, dispute_id: str, status: DisputeStatus,
                             resolution: Optional[str] = None) -> Dispute:
        dispute = self._disputes.get(dispute_id)
        if dispute is None:
            raise NotFoundError("DisputeNotFound", "Dispute not found", details={"dispute_id": dispute_id})
        now = self._clock()
        changes: dict = {"status": status, "updated_at": now}
        if resolution is not None:
            changes["resolution"] = resolution
        if status in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED):
            changes["resolved_at"] = now
        dispute = dispute.model_copy(update=changes)
        self._disputes[dispute_id] = dispute
        return dispute.model_copy()


async def seed_demo_merchant(store: SessionStore) -> Merchant:
    """Demo Cafe with the default 60/30/10 split."""
    existing = await store.find_merchant_by_slug("demo-cafe")
    if existing:
        return existing
    merchant = await store.save_merchant(
        name="Demo Cafe", slug="demo-cafe", wallet_address=DEMO_WALLET, merchant_id=DEMO_MERCHANT_ID,
    )
    await store.set_split_config(merchant.id, default_split_config())
    return merchant
