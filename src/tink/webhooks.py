"""
Webhook reconciler — applies asynchronous payment events to sessions.

Events may arrive before or after the synchronous ``settle`` result, and may
arrive more than once. Application is idempotent:

- ``payment.confirmed`` on a confirmed session is a no-op;
- ``payment.failed`` never overrides ``confirmed``;
- a Transaction is looked up before one is created.

Authenticity is an HMAC-SHA256 hex digest, either over the raw request body
(``X-Tink-Signature`` header) or, for envelopes that carry their own
``signature`` field, over the canonical JSON of ``{event, data}``.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from tink.config import EngineConfig
from tink.errors import InternalError, TinkError, UnauthorizedError, ValidationError
from tink.models.result import WebhookResult
from tink.models.session import SessionStatus, TipSession
from tink.models.webhook import WebhookData, WebhookEnvelope, WebhookEvent
from tink.payments import PaymentCoordinator
from tink.sessions import SessionService
from tink.store.base import SessionStore

logger = logging.getLogger(__name__)

S = SessionStatus

SIGNATURE_HEADER = "X-Tink-Signature"

# Statuses a payment event may still move forward
OPEN_PAYMENT_STATES = {S.PAYMENT_PENDING, S.PAYMENT_PROCESSING}


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode() if isinstance(value, str) else value


def canonical_json(value: Any) -> bytes:
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode()


def sign_body(body: Union[str, bytes], secret: str) -> str:
    return hmac.new(secret.encode(), _as_bytes(body), hashlib.sha256).hexdigest()


def sign_envelope(event: str, data: dict[str, Any], secret: str) -> str:
    return sign_body(canonical_json({"event": event, "data": data}), secret)


def verify_signature(body: Union[str, bytes], signature: str, secret: str) -> bool:
    return hmac.compare_digest(sign_body(body, secret).encode(), signature.strip().lower().encode())


class WebhookReconciler:
    def __init__(
        self,
        store: SessionStore,
        payments: PaymentCoordinator,
        config: Optional[EngineConfig] = None,
        sessions: Optional[SessionService] = None,
    ):
        self._store = store
        self._payments = payments
        self._config = config or EngineConfig()
        self._sessions = sessions or SessionService(store, self._config)

    def authenticate(self, raw_body: Union[str, bytes], signature: Optional[str] = None) -> WebhookEnvelope:
        """Parse ``raw_body`` and check its signature. Raises ``UnauthorizedError``."""
        try:
            envelope = WebhookEnvelope.model_validate_json(_as_bytes(raw_body))
        except PydanticValidationError as e:
            raise ValidationError("MalformedWebhook", "Webhook body is not a valid event envelope",
                                  details={"errors": e.errors(include_url=False)})

        secret = self._config.webhook_secret
        if not secret:
            logger.warning("webhook %s accepted without signature check: no secret configured", envelope.event)
            return envelope

        if signature:
            signed = _as_bytes(raw_body)
        elif envelope.signature:
            signature = envelope.signature
            signed = canonical_json({"event": envelope.event, "data": envelope.data})
        else:
            raise UnauthorizedError("Missing webhook signature")

        if not verify_signature(signed, signature, secret):
            raise UnauthorizedError("Invalid webhook signature")
        return envelope

    async def apply(self, envelope: WebhookEnvelope) -> WebhookResult:
        if envelope.event not in (WebhookEvent.PAYMENT_CONFIRMED, WebhookEvent.PAYMENT_FAILED):
            logger.info("ignoring webhook event %s", envelope.event)
            return WebhookResult(event=envelope.event)

        try:
            data = WebhookData.model_validate(envelope.data)
        except PydanticValidationError as e:
            raise ValidationError("MalformedWebhook", "Webhook data is missing sessionId",
                                  details={"errors": e.errors(include_url=False)})

        async with self._payments.locks.get(data.session_id):
            session = await self._sessions.get(data.session_id)
            if envelope.event == WebhookEvent.PAYMENT_CONFIRMED:
                applied, session = await self._confirm(session, data)
            else:
                applied, session = await self._fail(session, data)

        return WebhookResult(event=envelope.event, session_id=session.id, applied=applied,
                             status=session.status.value)

    async def _confirm(self, session: TipSession, data: WebhookData) -> tuple[bool, TipSession]:
        if session.status == S.CONFIRMED:
            logger.info("session %s already confirmed; duplicate confirmation ignored", session.id)
            return False, session
        if session.status not in OPEN_PAYMENT_STATES:
            logger.warning("confirmation for session %s ignored: status is %s", session.id, session.status.value)
            return False, session

        tx = await self._store.find_transaction_by_session(session.id)
        if tx is None and not data.settlement_ref:
            raise ValidationError("SettlementRefRequired",
                                  "Confirmation for an unsettled session must carry a settlement reference")

        payer = data.payer_address or session.payer_address
        if session.status == S.PAYMENT_PENDING:
            session = await self._sessions.transition(session, S.PAYMENT_PROCESSING, payer_address=payer)

        if tx is None:
            merchant = await self._sessions.find_merchant(session.merchant_id)
            await self._payments.record_settlement(
                session, merchant, data.settlement_ref,
                data.network_id or self._config.chain.network, payer or "",
            )
        else:
            await self._store.confirm_transaction(tx.id)

        session = await self._sessions.transition(session, S.CONFIRMED, payer_address=data.payer_address)
        return True, session

    async def _fail(self, session: TipSession, data: WebhookData) -> tuple[bool, TipSession]:
        if session.status not in OPEN_PAYMENT_STATES:
            logger.warning("failure event for session %s ignored: status is %s", session.id, session.status.value)
            return False, session
        if session.status == S.PAYMENT_PENDING:
            session = await self._sessions.transition(session, S.PAYMENT_PROCESSING)
        logger.info("session %s failed by webhook: %s", session.id, data.error or "no reason given")
        return True, await self._sessions.transition(session, S.FAILED)

    async def handle(self, raw_body: Union[str, bytes], signature: Optional[str] = None) -> WebhookResult:
        """Authenticate and apply one delivery. Never raises for expected conditions."""
        try:
            envelope = self.authenticate(raw_body, signature)
            return await self.apply(envelope)
        except UnauthorizedError as e:
            logger.warning("webhook rejected: %s", e.message)
            return WebhookResult(error=e.to_failure())
        except TinkError as e:
            logger.info("webhook not applied: %s (%s)", e.code, e.message)
            return WebhookResult(error=e.to_failure())
        except Exception:
            logger.exception("webhook processing failed")
            return WebhookResult(error=InternalError("Failed to process webhook").to_failure())
