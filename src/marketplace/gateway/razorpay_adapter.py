"""Razorpay adapter over the razorpay-python SDK.

Orders are created through ``client.order.create``; checkout callbacks are
verified with the SDK's own signature utility.
"""

import razorpay
import requests
import structlog
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from marketplace.gateway.port import PaymentGateway, PaymentGatewayError, PaymentIntent

logger = structlog.get_logger(__name__)


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str | None = None,
        client: razorpay.Client | None = None,
    ) -> None:
        super().__init__(key_id=key_id, secret=key_secret)
        if client is None:
            options = {"base_url": base_url} if base_url else {}
            client = razorpay.Client(auth=(key_id, key_secret), **options)
        self.client = client

    def create_intent(self, amount: int, currency: str, reference: str) -> PaymentIntent:
        try:
            payload = self.client.order.create(
                data={
                    "amount": amount,
                    "currency": currency,
                    "receipt": reference,
                    "payment_capture": 1,
                }
            )
        except (BadRequestError, GatewayError, ServerError, requests.RequestException) as exc:
            logger.error("Razorpay order creation failed", reference=reference, error=str(exc))
            raise PaymentGatewayError(f"Razorpay order creation failed: {exc}") from exc

        return PaymentIntent(
            gateway_order_ref=payload["id"],
            amount=payload.get("amount", amount),
            currency=payload.get("currency", currency),
            reference=reference,
            key_id=self.key_id,
        )

    def verify_signature(self, gateway_order_ref: str, gateway_payment_ref: str, signature: str | None) -> bool:
        if not signature:
            return False
        try:
            self.client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": gateway_order_ref,
                    "razorpay_payment_id": gateway_payment_ref,
                    "razorpay_signature": signature,
                }
            )
        except SignatureVerificationError:
            return False
        return True
