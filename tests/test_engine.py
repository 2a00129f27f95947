"""Sync TipEngine wrapper and facilitator selection."""

from decimal import Decimal

from tink import EngineConfig, HttpFacilitator, LocalFacilitator, SessionStatus, TipEngine
from tink.facilitator.local import build_local_payload
from tink.store.memory import seed_demo_merchant

PAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def test_default_facilitator_is_local():
    engine = TipEngine()
    assert isinstance(engine._async.facilitator, LocalFacilitator)
    engine.close()


def test_facilitator_url_selects_http():
    engine = TipEngine(config=EngineConfig(facilitator_url="https://facilitator.test"))
    assert isinstance(engine._async.facilitator, HttpFacilitator)
    engine.close()


def test_sync_flow():
    engine = TipEngine()
    engine._run(seed_demo_merchant(engine.store))

    session = engine.create_session("demo-cafe", "25.00")
    session = engine.select_tip(session.id, tip_percentage=20)
    assert session.total_amount == Decimal("30.00")

    prepared = engine.prepare_session(session.id)
    payload = build_local_payload(prepared.requirement, PAYER)
    assert engine.verify_session(session.id, payload).valid

    settled = engine.settle_session(session.id, payload, PAYER)
    assert settled.success
    assert engine.get_session(session.id).status == SessionStatus.CONFIRMED

    summary = engine.tip_split("demo-cafe", session.tip_amount)
    assert [a.amount for a in summary.splits] == [Decimal("3.00"), Decimal("1.50"), Decimal("0.50")]
    engine.close()


def test_tip_options_static():
    assert TipEngine.tip_options(10).options[1].amount == Decimal("1.50")
