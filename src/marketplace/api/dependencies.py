"""FastAPI dependency providers.

Settings are read and validated once; the gateway built from them is shared
by the order placer and the payment settlement. Tests swap either through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from marketplace.config import Settings
from marketplace.gateway import PaymentGateway, build_gateway
from marketplace.inventory.ledger import InventoryLedger
from marketplace.order.placement import OrderPlacer
from marketplace.payment.settlement import PaymentSettlement


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache
def _gateway_for(settings: Settings) -> PaymentGateway:
    return build_gateway(settings)


def get_gateway(settings: Settings = Depends(get_settings)) -> PaymentGateway:
    return _gateway_for(settings)


def get_inventory_ledger() -> InventoryLedger:
    return InventoryLedger()


def get_order_placer(
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> OrderPlacer:
    return OrderPlacer(gateway, settings)


def get_payment_settlement(
    gateway: PaymentGateway = Depends(get_gateway),
    ledger: InventoryLedger = Depends(get_inventory_ledger),
) -> PaymentSettlement:
    return PaymentSettlement(gateway, ledger)
