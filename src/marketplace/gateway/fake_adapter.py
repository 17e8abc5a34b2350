"""Configurable fake payment gateway for development and testing.

Issues intents without any network call and signs callbacks with a known
secret, so tests can produce both genuine and forged confirmations.
"""

from uuid import uuid4

from marketplace.gateway.port import PaymentGateway, PaymentGatewayError, PaymentIntent, sign


class FakeGateway(PaymentGateway):
    def __init__(self, secret: str = "fake-gateway-secret", key_id: str = "rzp_test_fake") -> None:
        super().__init__(key_id=key_id, secret=secret)
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_intent(self, amount: int, currency: str, reference: str) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "reference": reference,
            }
        )
        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

        return PaymentIntent(
            gateway_order_ref=f"order_fake_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            reference=reference,
            key_id=self.key_id,
        )

    def sign(self, gateway_order_ref: str, gateway_payment_ref: str) -> str:
        """Produce the signature the real gateway would attach to a callback."""
        return sign(self._secret, gateway_order_ref, gateway_payment_ref)
