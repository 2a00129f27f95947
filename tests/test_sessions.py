"""Session state machine."""

from datetime import timedelta
from decimal import Decimal

import pytest

from tink.config import EngineConfig
from tink.errors import InvalidStateError, NotFoundError, ValidationError
from tink.models.session import SessionStatus
from tink.sessions import ALLOWED_TRANSITIONS, SessionService, can_transition, ensure_transition
from tink.store.memory import DEMO_MERCHANT_ID, MemorySessionStore, seed_demo_merchant

S = SessionStatus


@pytest.fixture
def store(clock):
    return MemorySessionStore(clock=clock)


@pytest.fixture
def service(store, clock):
    return SessionService(store, EngineConfig(session_ttl_seconds=600), clock=clock)


async def make_session(store, service, bill="10.00"):
    await seed_demo_merchant(store)
    return await service.create("demo-cafe", bill)


class TestTransitionTable:
    def test_terminal_states_have_no_exits(self):
        for status in (S.CONFIRMED, S.FAILED, S.EXPIRED):
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_happy_path_is_allowed(self):
        path = [S.PENDING, S.TIP_SELECTED, S.PAYMENT_PENDING, S.PAYMENT_PROCESSING, S.CONFIRMED]
        for current, target in zip(path, path[1:]):
            assert can_transition(current, target)

    def test_processing_cannot_expire(self):
        assert not can_transition(S.PAYMENT_PROCESSING, S.EXPIRED)

    def test_illegal_transition_raises(self):
        with pytest.raises(InvalidStateError) as exc:
            ensure_transition(S.PENDING, S.CONFIRMED)
        assert exc.value.code == "IllegalTransition"


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_pending_session(self, store, service, clock):
        session = await make_session(store, service)
        assert session.status == S.PENDING
        assert session.merchant_id == DEMO_MERCHANT_ID
        assert session.bill_amount == Decimal("10.00")
        assert session.currency == "USDC"
        assert session.memo.startswith("Tink-")
        assert session.expires_at == clock.now + timedelta(seconds=600)

    @pytest.mark.asyncio
    async def test_memos_are_unique(self, store, service):
        await seed_demo_merchant(store)
        memos = {(await service.create(DEMO_MERCHANT_ID, 5)).memo for _ in range(50)}
        assert len(memos) == 50

    @pytest.mark.asyncio
    async def test_unknown_merchant(self, service):
        with pytest.raises(NotFoundError) as exc:
            await service.create("nobody", 10)
        assert exc.value.code == "MerchantNotFound"

    @pytest.mark.asyncio
    async def test_invalid_bill(self, store, service):
        await seed_demo_merchant(store)
        with pytest.raises(ValidationError):
            await service.create("demo-cafe", 0)


class TestSelectTip:
    @pytest.mark.asyncio
    async def test_select_and_reselect(self, store, service):
        session = await make_session(store, service)
        session = await service.select_tip(session.id, tip_percentage=15)
        assert session.status == S.TIP_SELECTED
        assert session.total_amount == Decimal("11.50")

        session = await service.select_tip(session.id, tip_amount=2)
        assert session.tip_percentage == Decimal("20.0")
        assert session.total_amount == Decimal("12.00")

    @pytest.mark.asyncio
    async def test_rejected_once_payment_pending(self, store, service):
        session = await make_session(store, service)
        session = await service.select_tip(session.id, tip_percentage=15)
        await service.transition(session, S.PAYMENT_PENDING)
        with pytest.raises(InvalidStateError) as exc:
            await service.select_tip(session.id, tip_percentage=20)
        assert exc.value.code == "PaymentInProgress"

    @pytest.mark.asyncio
    async def test_rejected_when_expired(self, store, service, clock):
        session = await make_session(store, service)
        clock.advance(seconds=601)
        with pytest.raises(InvalidStateError) as exc:
            await service.select_tip(session.id, tip_percentage=15)
        assert exc.value.code == "Expired"

    @pytest.mark.asyncio
    async def test_unknown_session(self, service):
        with pytest.raises(NotFoundError) as exc:
            await service.select_tip("session_missing", tip_percentage=15)
        assert exc.value.code == "SessionNotFound"


class TestLazyExpiry:
    @pytest.mark.asyncio
    async def test_read_after_expiry_persists_expired(self, store, service, clock):
        session = await make_session(store, service)
        clock.advance(seconds=599)
        assert (await service.get(session.id)).status == S.PENDING

        clock.advance(seconds=2)
        assert (await service.get(session.id)).status == S.EXPIRED
        assert (await store.get(session.id)).status == S.EXPIRED

    @pytest.mark.asyncio
    async def test_processing_session_does_not_expire(self, store, service, clock):
        session = await make_session(store, service)
        session = await service.select_tip(session.id, tip_percentage=15)
        session = await service.transition(session, S.PAYMENT_PENDING)
        await service.transition(session, S.PAYMENT_PROCESSING)
        clock.advance(hours=2)
        assert (await service.get(session.id)).status == S.PAYMENT_PROCESSING


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_expires(self, store, service):
        session = await make_session(store, service)
        assert (await service.cancel(session.id)).status == S.EXPIRED

    @pytest.mark.asyncio
    async def test_cannot_cancel_confirmed(self, store, service):
        session = await make_session(store, service)
        session = await service.select_tip(session.id, tip_percentage=15)
        for target in (S.PAYMENT_PENDING, S.PAYMENT_PROCESSING, S.CONFIRMED):
            session = await service.transition(session, target)
        with pytest.raises(InvalidStateError) as exc:
            await service.cancel(session.id)
        assert exc.value.code == "AlreadySettled"


class TestCompareAndSet:
    @pytest.mark.asyncio
    async def test_stale_snapshot_loses(self, store, service):
        session = await make_session(store, service)
        stale = session
        await service.transition(session, S.EXPIRED)
        with pytest.raises(InvalidStateError) as exc:
            await service.transition(stale, S.TIP_SELECTED)
        assert exc.value.code == "StatusConflict"
