"""Shared fixtures: a controllable clock and an engine wired to a counting local facilitator."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio

from tink.config import EngineConfig
from tink.engine import AsyncTipEngine
from tink.facilitator.local import LocalFacilitator, build_local_payload
from tink.models.payment import PaymentRequirement, SettleResponse
from tink.store.memory import seed_demo_merchant

PAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
WEBHOOK_SECRET = "whsec_test"


class Clock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class CountingFacilitator(LocalFacilitator):
    """LocalFacilitator that records settle calls and can be told to fail.

    ``settle`` yields to the event loop once, so concurrent callers interleave
    while the settling session holds its lock.
    """

    def __init__(self, config: EngineConfig):
        super().__init__(config)
        self.settle_calls = 0
        self.fail_with: Optional[str] = None
        self.raise_exc: Optional[Exception] = None

    async def settle(self, payment_payload: str, requirement: PaymentRequirement) -> SettleResponse:
        self.settle_calls += 1
        await asyncio.sleep(0)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.fail_with is not None:
            return SettleResponse(success=False, error=self.fail_with)
        return await super().settle(payment_payload, requirement)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config():
    return EngineConfig(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def facilitator(config):
    return CountingFacilitator(config)


@pytest_asyncio.fixture
async def engine(config, facilitator, clock):
    engine = AsyncTipEngine(config=config, facilitator=facilitator, clock=clock)
    await seed_demo_merchant(engine.store)
    yield engine
    await engine.close()


async def tipped_session(engine, bill="10.00", pct=15):
    session = await engine.create_session("demo-cafe", bill)
    return await engine.select_tip(session.id, tip_percentage=pct)


async def prepared_payload(engine, session_id, payer=PAYER):
    prepared = await engine.prepare_session(session_id)
    assert prepared.ok, prepared.error
    return build_local_payload(prepared.requirement, payer)
