"""Typed failures raised across the marketplace core.

Every failure is a Protean ``ValidationError`` so that unit-of-work rollback
and message handling behave the same everywhere. Absent records are
reported with Protean's ``ObjectNotFoundError``.
"""

from protean.exceptions import ValidationError


class StockConflict(ValidationError):
    """Insufficient quantity, unavailable produce, or an oversell at settlement."""

    def __init__(self, messages, available: int | None = None, **kwargs):
        super().__init__(messages, **kwargs)
        self.available = available


class CartPolicyConflict(ValidationError):
    """The cart is already bound to a different vendor."""


class PaymentVerificationFailed(ValidationError):
    """The gateway signature did not match the expected one."""


class ReportConsistencyConflict(ValidationError):
    """A daily report for the same vendor and day was created concurrently."""


def _first(messages) -> str | None:
    if isinstance(messages, dict):
        for values in messages.values():
            if isinstance(values, (list, tuple)):
                if values:
                    return str(values[0])
            elif values:
                return str(values)
        return None
    return str(messages) if messages else None


def first_message(exc: Exception) -> str:
    """Return the first human readable message carried by a Protean exception."""
    message = _first(getattr(exc, "messages", None))
    if message is None and exc.args:
        message = _first(exc.args[0])
    return message or str(exc)
