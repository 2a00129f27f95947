"""
Local facilitator — in-process stand-in for a real settlement service.

It runs the same structural checks a facilitator would (scheme, network,
recipient, amount, validity window, signature shape) but does not recover
the signer or broadcast anything; ``settle`` hands back a random 32-byte hash.
Useful for demos, tests and offline development.
"""

import logging
import secrets
import time
from typing import Callable, Optional

from tink.config import EngineConfig
from tink.errors import ValidationError
from tink.facilitator.base import Facilitator
from tink.models.payment import (
    ExactPayload,
    PaymentPayload,
    PaymentRequirement,
    SettleResponse,
    SupportedAsset,
    SupportedKinds,
    TransferAuthorization,
    VerifyResponse,
    encode_payment_payload,
    parse_payment_payload,
)
from tink.signature import normalize_signature_v

logger = logging.getLogger(__name__)


class LocalFacilitator(Facilitator):
    def __init__(self, config: Optional[EngineConfig] = None, clock: Callable[[], float] = time.time):
        self._config = config or EngineConfig()
        self._clock = clock
        self.settled: list[str] = []

    async def supported(self) -> SupportedKinds:
        chain = self._config.chain
        return SupportedKinds(
            schemes=[self._config.scheme],
            networks=[chain.network],
            assets=[SupportedAsset(address=chain.usdc, symbol="USDC",
                                   decimals=self._config.asset_decimals, chain_id=chain.chain_id)],
        )

    def _check(self, payload: PaymentPayload, requirement: PaymentRequirement) -> Optional[str]:
        """Return an invalid reason, or None if the payload satisfies ``requirement``."""
        if payload.scheme != requirement.scheme:
            return "Unsupported payment scheme"
        if payload.network != requirement.network:
            return "Network mismatch"
        auth = payload.payload.authorization
        if not payload.payload.signature:
            return "Missing payment signature"
        try:
            normalize_signature_v(payload.payload.signature, self._config.chain.chain_id)
        except ValidationError as e:
            return e.message
        if auth.to.lower() != requirement.pay_to.lower():
            return "Recipient mismatch"
        try:
            value, valid_after, valid_before = int(auth.value), int(auth.valid_after), int(auth.valid_before)
        except ValueError:
            return "Authorization fields must be integers"
        if value < int(requirement.max_amount_required):
            return "Authorized value below required amount"
        now = int(self._clock())
        if now < valid_after:
            return "Authorization not yet valid"
        if now >= valid_before:
            return "Authorization expired"
        return None

    async def verify(self, payment_payload: str, requirement: PaymentRequirement) -> VerifyResponse:
        try:
            payload = parse_payment_payload(payment_payload)
        except ValidationError as e:
            return VerifyResponse(valid=False, invalid_reason=e.message)
        reason = self._check(payload, requirement)
        return VerifyResponse(valid=reason is None, invalid_reason=reason,
                              payer=payload.payload.authorization.from_)

    async def settle(self, payment_payload: str, requirement: PaymentRequirement) -> SettleResponse:
        verdict = await self.verify(payment_payload, requirement)
        if not verdict.valid:
            return SettleResponse(success=False, error=verdict.invalid_reason)
        tx_hash = "0x" + secrets.token_hex(32)
        self.settled.append(tx_hash)
        logger.info("simulated settlement of %s on %s: %s", requirement.resource, requirement.network, tx_hash)
        return SettleResponse(success=True, settlement_ref=tx_hash, network_id=requirement.network,
                              payer=verdict.payer)


def build_local_payload(
    requirement: PaymentRequirement,
    payer_address: str,
    now: Optional[float] = None,
    signature: Optional[str] = None,
) -> str:
    """Encode an authorization that satisfies ``requirement`` for LocalFacilitator.

    The default signature is 65 random bytes with a legacy ``v`` of 27; it has
    the right shape but is not a recoverable signature.
    """
    issued = int(time.time() if now is None else now)
    payload = PaymentPayload(
        x402_version=requirement.x402_version,
        scheme=requirement.scheme,
        network=requirement.network,
        payload=ExactPayload(
            signature=signature or "0x" + secrets.token_hex(64) + "1b",
            authorization=TransferAuthorization(
                from_=payer_address,
                to=requirement.pay_to,
                value=requirement.max_amount_required,
                valid_after=str(issued - 60),
                valid_before=str(issued + requirement.max_timeout_seconds),
                nonce="0x" + secrets.token_hex(32),
            ),
        ),
    )
    return encode_payment_payload(payload)
