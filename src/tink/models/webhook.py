"""
Webhook envelope — asynchronous payment events from the facilitator or a chain indexer.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WebhookEvent:
    PAYMENT_CONFIRMED = "payment.confirmed"
    PAYMENT_FAILED = "payment.failed"
    DISPUTE_CREATED = "dispute.created"
    DISPUTE_RESOLVED = "dispute.resolved"


class WebhookData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    session_id: str = Field(validation_alias=AliasChoices("sessionId", "session_id"))
    settlement_ref: Optional[str] = Field(
        None, validation_alias=AliasChoices("txHash", "settlementRef", "settlement_ref"),
    )
    payer_address: Optional[str] = Field(None, validation_alias=AliasChoices("payerAddress", "payer_address"))
    network_id: Optional[str] = Field(None, validation_alias=AliasChoices("networkId", "network_id"))
    error: Optional[str] = None


class WebhookEnvelope(BaseModel):
    event: str
    data: dict[str, Any]
    signature: Optional[str] = None
    timestamp: Optional[str] = None
