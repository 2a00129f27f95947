"""HttpFacilitator against a mocked facilitator API."""

import json

import httpx
import pytest

from tink.errors import FacilitatorError
from tink.facilitator.http import HttpFacilitator
from tink.facilitator.local import build_local_payload
from tink.models.payment import PaymentRequirement

BASE_URL = "https://facilitator.test"

REQUIREMENT = PaymentRequirement(
    network="avalanche-fuji",
    max_amount_required="11500000",
    resource="/api/payments/settle/session_1",
    description="Tip payment to Demo Cafe",
    pay_to="0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045",
    asset="0x5425890298aed601595a70AB815c96711a31Bc65",
)
PAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def make_facilitator(handler, token=None):
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpFacilitator(BASE_URL, token=token, client=client)


@pytest.mark.asyncio
async def test_verify_posts_decoded_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"isValid": True, "payer": PAYER})

    facilitator = make_facilitator(handler, token="tok")
    result = await facilitator.verify(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)

    assert result.valid
    assert result.payer == PAYER
    assert seen["path"] == "/verify"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"]["x402Version"] == 1
    assert seen["body"]["paymentPayload"]["payload"]["authorization"]["from"] == PAYER
    assert seen["body"]["paymentRequirements"]["payTo"] == REQUIREMENT.pay_to


@pytest.mark.asyncio
async def test_verify_invalid_reason():
    facilitator = make_facilitator(lambda r: httpx.Response(200, json={"isValid": False,
                                                                      "invalidReason": "invalid_signature"}))
    result = await facilitator.verify(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)
    assert not result.valid
    assert result.invalid_reason == "invalid_signature"


@pytest.mark.asyncio
async def test_malformed_payload_never_reaches_network():
    def handler(request):
        raise AssertionError("no request expected")

    facilitator = make_facilitator(handler)
    assert not (await facilitator.verify("%%%", REQUIREMENT)).valid
    assert not (await facilitator.settle("%%%", REQUIREMENT)).success


@pytest.mark.asyncio
async def test_settle_success():
    tx = "0x" + "12" * 32
    facilitator = make_facilitator(
        lambda r: httpx.Response(200, json={"success": True, "transaction": tx, "network": "avalanche-fuji"})
    )
    result = await facilitator.settle(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)
    assert result.success
    assert result.settlement_ref == tx
    assert result.network_id == "avalanche-fuji"


@pytest.mark.asyncio
async def test_settle_legacy_field_names():
    facilitator = make_facilitator(
        lambda r: httpx.Response(200, json={"success": False, "error": "insufficient_funds"})
    )
    result = await facilitator.settle(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)
    assert not result.success
    assert result.error == "insufficient_funds"


@pytest.mark.asyncio
async def test_http_error_raises():
    facilitator = make_facilitator(lambda r: httpx.Response(502, text="bad gateway"))
    with pytest.raises(FacilitatorError) as exc:
        await facilitator.settle(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)
    assert exc.value.code == "HttpError"
    assert exc.value.details["status_code"] == 502


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FacilitatorError) as exc:
        await make_facilitator(handler).supported()
    assert exc.value.code == "TransportError"


@pytest.mark.asyncio
async def test_non_json_response():
    facilitator = make_facilitator(lambda r: httpx.Response(200, text="<html>"))
    with pytest.raises(FacilitatorError) as exc:
        await facilitator.supported()
    assert exc.value.code == "BadResponse"


@pytest.mark.asyncio
async def test_supported_kinds_format():
    facilitator = make_facilitator(lambda r: httpx.Response(200, json={"kinds": [
        {"x402Version": 1, "scheme": "exact", "network": "avalanche-fuji"},
        {"x402Version": 1, "scheme": "exact", "network": "avalanche"},
    ]}))
    kinds = await facilitator.supported()
    assert kinds.schemes == ["exact"]
    assert kinds.networks == ["avalanche", "avalanche-fuji"]


@pytest.mark.asyncio
async def test_supported_flat_format():
    facilitator = make_facilitator(lambda r: httpx.Response(200, json={
        "schemes": ["exact"],
        "networks": ["avalanche-fuji"],
        "tokens": [{"address": REQUIREMENT.asset, "symbol": "USDC", "decimals": 6, "chainId": 43113}],
    }))
    kinds = await facilitator.supported()
    assert kinds.assets[0].chain_id == 43113
    await facilitator.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [["exact"], "ok", 42])
async def test_non_object_response(payload):
    facilitator = make_facilitator(lambda r: httpx.Response(200, json=payload))
    with pytest.raises(FacilitatorError) as exc:
        await facilitator.settle(build_local_payload(REQUIREMENT, PAYER), REQUIREMENT)
    assert exc.value.code == "BadResponse"
