"""
Session Store contract.

The engine treats persistence as an external keyed-record store and only
talks to it through this read-modify-write surface. Implementations must make
``set_status`` with ``expected`` an atomic compare-and-set.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from tink.models.dispute import Dispute, DisputeReason, DisputeStatus
from tink.models.session import Merchant, SessionStatus, TipSession
from tink.models.split import SplitShare
from tink.models.transaction import Transaction, TransactionFields


class SessionStore(ABC):

    # -- sessions --------------------------------------------------------

    @abstractmethod
    async def get(self, session_id: str) -> Optional[TipSession]:
        ...

    @abstractmethod
    async def create(self, merchant_id: str, bill_amount: Decimal, currency: str,
                     ttl_seconds: int) -> TipSession:
        """Insert a pending session; the store assigns id, memo and expiry."""

    @abstractmethod
    async def set_tip(self, session_id: str, tip_amount: Decimal, tip_pct: Decimal) -> TipSession:
        """Record the tip, set ``total = bill + tip`` and move to ``tip_selected``."""

    @abstractmethod
    async def set_status(
        self,
        session_id: str,
        status: SessionStatus,
        payer_address: Optional[str] = None,
        expected: Optional[SessionStatus] = None,
    ) -> TipSession:
        """Write ``status``. With ``expected``, raise ``InvalidStateError("StatusConflict")``
        unless the stored status still equals it."""

    # -- transactions ----------------------------------------------------

    @abstractmethod
    async def create_transaction(self, fields: TransactionFields) -> Transaction:
        ...

    @abstractmethod
    async def confirm_transaction(self, transaction_id: str) -> Transaction:
        ...

    @abstractmethod
    async def find_transaction_by_session(self, session_id: str) -> Optional[Transaction]:
        ...

    # -- merchants and split configuration ---------------------------------

    @abstractmethod
    async def get_merchant(self, merchant_id: str) -> Optional[Merchant]:
        ...

    @abstractmethod
    async def find_merchant_by_slug(self, slug: str) -> Optional[Merchant]:
        ...

    @abstractmethod
    async def save_merchant(self, name: str, slug: str, wallet_address: str,
                            avatar: Optional[str] = None, merchant_id: Optional[str] = None) -> Merchant:
        ...

    @abstractmethod
    async def get_split_config(self, merchant_id: str) -> list[SplitShare]:
        ...

    @abstractmethod
    async def set_split_config(self, merchant_id: str, shares: list[SplitShare]) -> list[SplitShare]:
        """Replace the configuration. Callers validate before writing."""

    # -- disputes --------------------------------------------------------

    @abstractmethod
    async def create_dispute(self, session_id: str, merchant_id: str, reason: DisputeReason,
                             details: str, submitted_by: str) -> Dispute:
        ...

    @abstractmethod
    async def get_dispute(self, dispute_id: str) -> Optional[Dispute]:
        ...

    @abstractmethod
    async def list_disputes(self, merchant_id: str) -> list[Dispute]:
        """Newest first."""

    @abstractmethod
    async def update_dispute(self, dispute_id: str, status: DisputeStatus,
                             resolution: Optional[str] = None) -> Dispute:
        ...
