"""
x402 payment models — requirement, signed payload, facilitator responses.

Wire names are camelCase; construct with either spelling and dump with
``model_dump(by_alias=True)``.
"""

import base64
import binascii
import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tink.errors import ValidationError


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AssetDomain(WireModel):
    """EIP-712 domain metadata the client needs to sign a transfer authorization."""
    name: str
    version: str
    chain_id: int


class PaymentRequirement(WireModel):
    x402_version: int = Field(1, alias="x402Version")
    scheme: str = "exact"
    network: str
    max_amount_required: str
    resource: str
    description: str
    mime_type: str = "application/json"
    pay_to: str
    max_timeout_seconds: int = 300
    asset: str
    extra: Optional[AssetDomain] = None


class TransferAuthorization(WireModel):
    """EIP-3009 transferWithAuthorization fields."""
    from_: str = Field(alias="from")
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str


class ExactPayload(WireModel):
    signature: str
    authorization: TransferAuthorization


class PaymentPayload(WireModel):
    x402_version: int = Field(alias="x402Version")
    scheme: str
    network: str
    payload: ExactPayload


def encode_payment_payload(payload: PaymentPayload) -> str:
    """Base64 JSON encoding used by the X-PAYMENT header."""
    return base64.b64encode(json.dumps(payload.to_wire()).encode()).decode()


def decode_payment_payload(encoded: str) -> dict[str, Any]:
    """Decode a base64 JSON payload without validating its structure."""
    try:
        raw = json.loads(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValidationError("MalformedPayload", f"Payment payload is not base64 JSON: {e}")
    if not isinstance(raw, dict):
        raise ValidationError("MalformedPayload", "Payment payload must be a JSON object")
    return raw


def parse_payment_payload(encoded: str) -> PaymentPayload:
    raw = decode_payment_payload(encoded)
    try:
        return PaymentPayload.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError("MalformedPayload", "Invalid payment payload structure",
                              details={"errors": e.errors(include_url=False)})


class SupportedAsset(BaseModel):
    address: str
    symbol: str
    decimals: int
    chain_id: int


class SupportedKinds(BaseModel):
    schemes: list[str]
    networks: list[str]
    assets: list[SupportedAsset] = []


class VerifyResponse(BaseModel):
    valid: bool
    invalid_reason: Optional[str] = None
    payer: Optional[str] = None


class SettleResponse(BaseModel):
    success: bool
    settlement_ref: Optional[str] = None
    network_id: Optional[str] = None
    error: Optional[str] = None
    payer: Optional[str] = None
