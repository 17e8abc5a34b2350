"""Payment gateway port (abstract interface).

OrderPlacer asks the gateway for a payment intent; PaymentSettlement asks
it whether a callback's signature is genuine. Adapters are constructed
explicitly from validated settings and passed in, never looked up globally.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass


class PaymentGatewayError(Exception):
    """The gateway could not create a payment intent."""


@dataclass(frozen=True)
class PaymentIntent:
    """A gateway-side order the client pays against."""

    gateway_order_ref: str
    amount: int  # minor units
    currency: str
    reference: str
    key_id: str | None = None

    def client_options(self) -> dict:
        """Options handed to the client-side checkout widget."""
        return {
            "key": self.key_id,
            "amount": self.amount,
            "currency": self.currency,
            "order_id": self.gateway_order_ref,
        }


def sign(secret: str, gateway_order_ref: str, gateway_payment_ref: str) -> str:
    """HMAC-SHA256 hex digest of ``order_ref|payment_ref``."""
    payload = f"{gateway_order_ref}|{gateway_payment_ref}".encode()
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    def __init__(self, key_id: str | None, secret: str) -> None:
        self.key_id = key_id
        self._secret = secret

    @abstractmethod
    def create_intent(self, amount: int, currency: str, reference: str) -> PaymentIntent:
        """Create a gateway order for ``amount`` minor units, tagged with our ``reference``."""
        ...

    def verify_signature(self, gateway_order_ref: str, gateway_payment_ref: str, signature: str | None) -> bool:
        if not signature:
            return False
        expected = sign(self._secret, gateway_order_ref, gateway_payment_ref)
        return hmac.compare_digest(expected, signature)
