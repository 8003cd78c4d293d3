"""Payment Gateway Implementations

Provides concrete payment gateway clients.
"""

import logging
import random
from datetime import timedelta
from typing import Optional
import httpx
from src.app.services.payment_gateway import PaymentGateway, PaymentSession
from src.domain.base import utcnow
from src.domain.errors import GatewayUnavailable
from src.domain.money import Money
from src.domain.wallet_transaction import PaymentMethod

logger = logging.getLogger(__name__)

MOCK_CHECKOUT_URL = "https://mock-gateway.com/pay/{gateway_transaction_id}"


def generate_gateway_transaction_id() -> str:
    """TXN_<epoch millis>_<random 4 digits>"""
    millis = int(utcnow().timestamp() * 1000)
    return f"TXN_{millis}_{random.randint(1000, 9999)}"


class MockPaymentGateway(PaymentGateway):
    """
    Payment gateway that never leaves the process

    Used for development and tests. The payment is settled later by posting
    a callback to the webhook endpoint.
    """

    def __init__(self, session_ttl_minutes: int = 15, webhook_secret: Optional[str] = None):
        self.session_ttl_minutes = session_ttl_minutes
        self.webhook_secret = webhook_secret

    async def create_payment(
        self,
        owner_id: str,
        amount: Money,
        payment_method: PaymentMethod,
    ) -> PaymentSession:
        gateway_transaction_id = generate_gateway_transaction_id()
        logger.info(
            f"Mock payment session {gateway_transaction_id} for user {owner_id}: "
            f"{amount} via {PaymentMethod(payment_method).value}"
        )
        return PaymentSession(
            gateway_transaction_id=gateway_transaction_id,
            payment_url=MOCK_CHECKOUT_URL.format(gateway_transaction_id=gateway_transaction_id),
            expires_at=utcnow() + timedelta(minutes=self.session_ttl_minutes),
        )


class HttpPaymentGateway(PaymentGateway):
    """
    Payment gateway client over HTTP

    POSTs {owner_id, amount, currency, payment_method} to <base_url>/payments
    and expects {gateway_transaction_id, payment_url, expires_at?} back.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        session_ttl_minutes: int = 15,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.session_ttl_minutes = session_ttl_minutes
        self.timeout = timeout

    async def create_payment(
        self,
        owner_id: str,
        amount: Money,
        payment_method: PaymentMethod,
    ) -> PaymentSession:
        payload = {
            "owner_id": owner_id,
            "amount": str(amount.to_decimal()),
            "currency": amount.currency,
            "payment_method": PaymentMethod(payment_method).value,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/payments",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Payment gateway request failed for user {owner_id}: {e}")
            raise GatewayUnavailable("Payment gateway unavailable", reason=str(e))

        if not body.get("expires_at"):
            body["expires_at"] = utcnow() + timedelta(minutes=self.session_ttl_minutes)

        logger.info(
            f"Payment session {body.get('gateway_transaction_id')} created for user {owner_id}"
        )
        return PaymentSession(**body)


def create_payment_gateway(config) -> PaymentGateway:
    """
    Factory function to create the configured payment gateway

    Args:
        config: ApplicationConfig-like object. PAYMENT_GATEWAY_URL selects
                the HTTP gateway; without it the mock gateway is used.

    Returns:
        Configured PaymentGateway
    """
    ttl = getattr(config, "PAYMENT_SESSION_TTL_MINUTES", 15)
    secret = getattr(config, "PAYMENT_GATEWAY_WEBHOOK_SECRET", None)
    url = getattr(config, "PAYMENT_GATEWAY_URL", None)

    if url:
        return HttpPaymentGateway(
            base_url=url,
            api_key=getattr(config, "PAYMENT_GATEWAY_API_KEY", None),
            webhook_secret=secret,
            session_ttl_minutes=ttl,
        )

    return MockPaymentGateway(session_ttl_minutes=ttl, webhook_secret=secret)
