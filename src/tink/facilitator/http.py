"""
HTTP facilitator client — x402 facilitator REST API.

    GET  /supported
    POST /verify   {x402Version, paymentPayload, paymentRequirements}
    POST /settle   {x402Version, paymentPayload, paymentRequirements}
"""

import logging
from typing import Any, Optional

import httpx

from tink.errors import FacilitatorError, ValidationError
from tink.facilitator.base import Facilitator
from tink.models.payment import (
    PaymentRequirement,
    SettleResponse,
    SupportedAsset,
    SupportedKinds,
    VerifyResponse,
    decode_payment_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HttpFacilitator(Facilitator):
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "tink-engine/0.1.0", "Accept": "application/json"},
            timeout=timeout,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, json=body, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise FacilitatorError("TransportError", f"Facilitator {path} unreachable: {e}")
        if resp.status_code >= 400:
            raise FacilitatorError("HttpError", f"HTTP {resp.status_code}: {resp.text[:200]}",
                                   details={"status_code": resp.status_code, "path": path})
        try:
            data = resp.json()
        except ValueError:
            raise FacilitatorError("BadResponse", f"Facilitator {path} returned non-JSON body")
        if not isinstance(data, dict):
            raise FacilitatorError("BadResponse", f"Facilitator {path} returned {type(data).__name__}, expected an object")
        return data

    @staticmethod
    def _body(payment_payload: dict[str, Any], requirement: PaymentRequirement) -> dict[str, Any]:
        return {
            "x402Version": requirement.x402_version,
            "paymentPayload": payment_payload,
            "paymentRequirements": requirement.to_wire(),
        }

    async def supported(self) -> SupportedKinds:
        data = await self._request("GET", "/supported")
        # Standard x402 facilitators answer {kinds: [{scheme, network}]}; older ones answer flat lists.
        if "kinds" in data:
            kinds = data.get("kinds") or []
            return SupportedKinds(
                schemes=sorted({k["scheme"] for k in kinds if "scheme" in k}),
                networks=sorted({k["network"] for k in kinds if "network" in k}),
            )
        return SupportedKinds(
            schemes=data.get("schemes", []),
            networks=data.get("networks", []),
            assets=[
                SupportedAsset(address=a["address"], symbol=a.get("symbol", ""), decimals=a.get("decimals", 6),
                               chain_id=a.get("chainId", 0))
                for a in data.get("tokens", data.get("assets", []))
            ],
        )

    async def verify(self, payment_payload: str, requirement: PaymentRequirement) -> VerifyResponse:
        try:
            decoded = decode_payment_payload(payment_payload)
        except ValidationError as e:
            return VerifyResponse(valid=False, invalid_reason=e.message)
        data = await self._request("POST", "/verify", self._body(decoded, requirement))
        return VerifyResponse(
            valid=bool(data.get("isValid")),
            invalid_reason=data.get("invalidReason"),
            payer=data.get("payer"),
        )

    async def settle(self, payment_payload: str, requirement: PaymentRequirement) -> SettleResponse:
        try:
            decoded = decode_payment_payload(payment_payload)
        except ValidationError as e:
            return SettleResponse(success=False, error=e.message)
        data = await self._request("POST", "/settle", self._body(decoded, requirement))
        result = SettleResponse(
            success=bool(data.get("success")),
            settlement_ref=data.get("transaction") or data.get("txHash"),
            network_id=data.get("network") or data.get("networkId"),
            error=data.get("errorReason") or data.get("error"),
            payer=data.get("payer"),
        )
        logger.info("facilitator settle for %s: success=%s ref=%s",
                    requirement.resource, result.success, result.settlement_ref)
        return result

    async def close(self) -> None:
        await self._client.aclose()
