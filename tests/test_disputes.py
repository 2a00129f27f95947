"""Dispute filing and review workflow."""

import pytest

from tink.disputes import DisputeService
from tink.errors import InvalidStateError, NotFoundError, ValidationError
from tink.models.dispute import DisputeStatus
from tink.models.session import SessionStatus

from conftest import tipped_session


@pytest.mark.asyncio
async def test_file_dispute(engine):
    session = await tipped_session(engine)
    dispute = await engine.create_dispute(session.id, "incorrect_amount", "  charged twice the tip ", "alice@example.com")
    assert dispute.status == DisputeStatus.PENDING
    assert dispute.merchant_id == session.merchant_id
    assert dispute.details == "charged twice the tip"


@pytest.mark.asyncio
async def test_filing_does_not_expire_session(engine, clock):
    session = await tipped_session(engine)
    clock.advance(hours=2)
    await engine.create_dispute(session.id, "other", "never served", "bob")
    assert (await engine.store.get(session.id)).status == SessionStatus.TIP_SELECTED


@pytest.mark.asyncio
@pytest.mark.parametrize("reason,details,by,code", [
    ("other", "", "bob", "DetailsRequired"),
    ("other", "x", "  ", "SubmitterRequired"),
    ("changed_my_mind", "x", "bob", "InvalidDisputeReason"),
])
async def test_rejects_invalid_input(engine, reason, details, by, code):
    session = await tipped_session(engine)
    with pytest.raises(ValidationError) as exc:
        await engine.create_dispute(session.id, reason, details, by)
    assert exc.value.code == code


@pytest.mark.asyncio
async def test_unknown_session(engine):
    with pytest.raises(NotFoundError) as exc:
        await engine.create_dispute("session_missing", "other", "x", "bob")
    assert exc.value.code == "SessionNotFound"


@pytest.mark.asyncio
async def test_list_newest_first(engine, clock):
    session = await tipped_session(engine)
    first = await engine.create_dispute(session.id, "other", "first", "bob")
    clock.advance(minutes=1)
    second = await engine.create_dispute(session.id, "duplicate_charge", "second", "bob")
    disputes = await engine.list_disputes("demo-cafe")
    assert [d.id for d in disputes] == [second.id, first.id]


@pytest.mark.asyncio
async def test_review_workflow(engine):
    session = await tipped_session(engine)
    dispute = await engine.create_dispute(session.id, "other", "x", "bob")

    with pytest.raises(InvalidStateError) as exc:
        await engine.update_dispute(dispute.id, "resolved")
    assert exc.value.code == "IllegalDisputeTransition"

    dispute = await engine.update_dispute(dispute.id, "under_review")
    assert dispute.status == DisputeStatus.UNDER_REVIEW
    assert dispute.resolved_at is None

    dispute = await engine.update_dispute(dispute.id, "resolved", resolution="refunded off-chain")
    assert dispute.status == DisputeStatus.RESOLVED
    assert dispute.resolution == "refunded off-chain"
    assert dispute.resolved_at is not None

    # same status again is a no-op, a different one is not
    assert (await engine.update_dispute(dispute.id, "resolved")).status == DisputeStatus.RESOLVED
    with pytest.raises(InvalidStateError):
        await engine.update_dispute(dispute.id, "rejected")


@pytest.mark.asyncio
async def test_invalid_status(engine):
    session = await tipped_session(engine)
    dispute = await engine.create_dispute(session.id, "other", "x", "bob")
    with pytest.raises(ValidationError) as exc:
        await engine.update_dispute(dispute.id, "closed")
    assert exc.value.code == "InvalidDisputeStatus"


@pytest.mark.asyncio
async def test_missing_dispute(engine):
    with pytest.raises(NotFoundError) as exc:
        await engine.update_dispute("dispute_missing", "under_review")
    assert exc.value.code == "DisputeNotFound"


def test_reason_labels():
    reasons = DisputeService.reasons()
    assert {"value": "duplicate_charge", "label": "Duplicate Charge"} in reasons
    assert len(reasons) == 5
