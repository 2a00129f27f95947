"""
Disputes — complaints filed against a session after (or instead of) payment.

Filing is legal for a session in any status; the review workflow is
pending -> under_review -> resolved | rejected.
"""

import logging
from typing import Optional

from tink.errors import InvalidStateError, NotFoundError, ValidationError
from tink.models.dispute import REASON_LABELS, Dispute, DisputeReason, DisputeStatus
from tink.sessions import SessionService
from tink.store.base import SessionStore

logger = logging.getLogger(__name__)

D = DisputeStatus

DISPUTE_TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    D.PENDING: frozenset({D.UNDER_REVIEW}),
    D.UNDER_REVIEW: frozenset({D.RESOLVED, D.REJECTED}),
    D.RESOLVED: frozenset(),
    D.REJECTED: frozenset(),
}


def _parse_enum(enum_cls, value, code: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(code, f"Invalid value {value!r}. Must be one of: {allowed}")


class DisputeService:
    def __init__(self, store: SessionStore, sessions: Optional[SessionService] = None):
        self._store = store
        self._sessions = sessions or SessionService(store)

    async def create(self, session_id: str, reason: str, details: str, submitted_by: str) -> Dispute:
        if not details or not details.strip():
            raise ValidationError("DetailsRequired", "details is required")
        if not submitted_by or not submitted_by.strip():
            raise ValidationError("SubmitterRequired", "submittedBy is required")
        parsed = _parse_enum(DisputeReason, reason, "InvalidDisputeReason")

        # Raw store read: disputes must not trigger lazy expiry writes.
        session = await self._store.get(session_id)
        if session is None:
            raise NotFoundError("SessionNotFound", "Session not found", details={"session_id": session_id})

        dispute = await self._store.create_dispute(session.id, session.merchant_id, parsed,
                                                   details.strip(), submitted_by.strip())
        logger.info("dispute %s filed against session %s: %s", dispute.id, session.id, parsed.value)
        return dispute

    async def get(self, dispute_id: str) -> Dispute:
        dispute = await self._store.get_dispute(dispute_id)
        if dispute is None:
            raise NotFoundError("DisputeNotFound", "Dispute not found", details={"dispute_id": dispute_id})
        return dispute

    async def list_for_merchant(self, merchant_ref: str) -> list[Dispute]:
        merchant = await self._sessions.find_merchant(merchant_ref)
        return await self._store.list_disputes(merchant.id)

    async def update_status(self, dispute_id: str, status: str, resolution: Optional[str] = None) -> Dispute:
        target = _parse_enum(DisputeStatus, status, "InvalidDisputeStatus")
        dispute = await self.get(dispute_id)
        if dispute.status == target:
            return dispute
        if target not in DISPUTE_TRANSITIONS[dispute.status]:
            raise InvalidStateError(
                "IllegalDisputeTransition",
                f"Cannot move dispute from {dispute.status.value} to {target.value}",
            )
        updated = await self._store.update_dispute(dispute_id, target, resolution)
        logger.info("dispute %s: %s -> %s", dispute_id, dispute.status.value, target.value)
        return updated

    @staticmethod
    def reasons() -> list[dict[str, str]]:
        return [{"value": reason.value, "label": label} for reason, label in REASON_LABELS.items()]
