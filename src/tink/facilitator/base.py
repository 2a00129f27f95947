"""The narrow surface the engine calls on a settlement facilitator."""

from abc import ABC, abstractmethod

from tink.models.payment import PaymentRequirement, SettleResponse, SupportedKinds, VerifyResponse


class Facilitator(ABC):
    @abstractmethod
    async def supported(self) -> SupportedKinds:
        ...

    @abstractmethod
    async def verify(self, payment_payload: str, requirement: PaymentRequirement) -> VerifyResponse:
        """Check structure and signature of a base64 payment payload against ``requirement``."""

    @abstractmethod
    async def settle(self, payment_payload: str, requirement: PaymentRequirement) -> SettleResponse:
        """Execute the authorized transfer. Runs to completion; never retried by the engine."""

    async def close(self) -> None:
        pass
