"""Payment Gateway Interface

Defines the contract for the outbound payment gateway used by top-ups and
for verifying signed gateway callbacks.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from src.domain.money import Money
from src.domain.wallet_transaction import PaymentMethod


class PaymentSession(BaseModel):
    """Checkout session returned by the gateway"""

    gateway_transaction_id: str
    payment_url: str
    expires_at: datetime


def compute_signature(payload: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw callback body"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """
    Abstract payment gateway

    Implementations:
    - MockPaymentGateway: local sessions with a mock checkout URL
    - HttpPaymentGateway: JSON API over HTTP
    """

    webhook_secret: Optional[str] = None

    @abstractmethod
    async def create_payment(
        self,
        owner_id: str,
        amount: Money,
        payment_method: PaymentMethod,
    ) -> PaymentSession:
        """
        Create a checkout session for a wallet top-up

        Args:
            owner_id: Paying user ID
            amount: Amount to collect
            payment_method: Requested payment method

        Returns:
            PaymentSession with gateway transaction ID, URL and expiry

        Raises:
            GatewayUnavailable: If the gateway cannot be reached
        """
        pass

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """
        Check a callback signature against the webhook secret

        Without a configured secret every callback is accepted.
        """
        if not self.webhook_secret:
            return True
        if not signature:
            return False
        expected = compute_signature(payload, self.webhook_secret)
        return hmac.compare_digest(expected, signature.strip().lower())
