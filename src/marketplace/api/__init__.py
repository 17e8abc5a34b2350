"""Marketplace API package."""

from marketplace.api.errors import register_exception_handlers
from marketplace.api.routes import cart_router, inventory_router, order_router, payment_router

__all__ = [
    "cart_router",
    "order_router",
    "payment_router",
    "inventory_router",
    "register_exception_handlers",
]
