"""Payment gateway construction.

``build_gateway`` turns validated settings into an adapter:
- FakeGateway for development and testing
- RazorpayGateway for production
"""

from marketplace.config import Settings
from marketplace.gateway.fake_adapter import FakeGateway
from marketplace.gateway.port import PaymentGateway, PaymentGatewayError, PaymentIntent
from marketplace.gateway.razorpay_adapter import RazorpayGateway

__all__ = [
    "FakeGateway",
    "PaymentGateway",
    "PaymentGatewayError",
    "PaymentIntent",
    "RazorpayGateway",
    "build_gateway",
]


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_gateway == "razorpay":
        return RazorpayGateway(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            base_url=settings.razorpay_base_url,
        )
    return FakeGateway(secret=settings.fake_gateway_secret)
