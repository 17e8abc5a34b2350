"""Application settings read from the environment and validated once at startup."""

import os
from dataclasses import dataclass

from protean.exceptions import ConfigurationError

SUPPORTED_GATEWAYS = ("fake", "razorpay")

# Business constants
RETAIL_ITEM_CAP = 15
PRODUCE_ITEM_CAP = 10
PRODUCE_SURCHARGE = 5
DELIVERY_CHARGE = 50
OVERSTOCK_THRESHOLD = 15


@dataclass(frozen=True)
class Settings:
    payment_gateway: str = "fake"
    razorpay_key_id: str | None = None
    razorpay_key_secret: str | None = None
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"
    reservation_minutes: int = 10
    fake_gateway_secret: str = "fake-gateway-secret"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        raw_minutes = env.get("RESERVATION_MINUTES", "10")
        try:
            reservation_minutes = int(raw_minutes)
        except ValueError as exc:
            raise ConfigurationError(f"RESERVATION_MINUTES must be an integer, got {raw_minutes!r}") from exc

        settings = cls(
            payment_gateway=env.get("PAYMENT_GATEWAY", "fake").lower(),
            razorpay_key_id=env.get("RAZORPAY_KEY_ID") or None,
            razorpay_key_secret=env.get("RAZORPAY_KEY_SECRET") or None,
            razorpay_base_url=env.get("RAZORPAY_BASE_URL", cls.razorpay_base_url),
            payment_currency=env.get("PAYMENT_CURRENCY", "INR").upper(),
            reservation_minutes=reservation_minutes,
            fake_gateway_secret=env.get("FAKE_GATEWAY_SECRET", cls.fake_gateway_secret),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.payment_gateway not in SUPPORTED_GATEWAYS:
            raise ConfigurationError(
                f"Unknown PAYMENT_GATEWAY {self.payment_gateway!r}; expected one of {', '.join(SUPPORTED_GATEWAYS)}"
            )
        if self.payment_gateway == "razorpay" and not (self.razorpay_key_id and self.razorpay_key_secret):
            raise ConfigurationError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required for the razorpay gateway")
        if self.reservation_minutes <= 0:
            raise ConfigurationError("RESERVATION_MINUTES must be positive")
        if len(self.payment_currency) != 3:
            raise ConfigurationError(f"PAYMENT_CURRENCY must be an ISO 4217 code, got {self.payment_currency!r}")
