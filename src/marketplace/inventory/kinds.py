"""Item kinds and the stock policy each kind follows.

Retail items carry a countable quantity; produce items carry a Y/N
availability flag. The kind is resolved to a ``StockPolicy`` once, at the
boundary, and every later stock decision goes through that policy.
"""

from abc import ABC, abstractmethod
from enum import Enum

from protean.exceptions import ValidationError

from marketplace.config import OVERSTOCK_THRESHOLD, PRODUCE_ITEM_CAP, RETAIL_ITEM_CAP
from marketplace.exceptions import StockConflict


class ItemKind(Enum):
    RETAIL = "Retail"
    PRODUCE = "Produce"

    @classmethod
    def parse(cls, value) -> "ItemKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError({"kind": ["Invalid kind provided"]}) from None


class Availability(Enum):
    AVAILABLE = "Y"
    UNAVAILABLE = "N"


class StockPolicy(ABC):
    kind: ItemKind
    cap: int

    @abstractmethod
    def has_stock(self, entry, quantity: int) -> bool:
        """True when ``entry`` can cover ``quantity`` units right now."""

    @abstractmethod
    def shortage(self, entry) -> StockConflict:
        """Build the conflict reported when ``entry`` cannot cover a request."""

    @abstractmethod
    def consume(self, repository, entry, quantity: int):
        """Apply a settled sale to the stored entry with a conditional update."""

    @abstractmethod
    def restore(self, repository, entry, quantity: int):
        """Undo a previous ``consume``."""

    @abstractmethod
    def is_suggestible(self, entry) -> bool:
        """Whether ``entry`` should be offered as an extra."""

    def check_available(self, entry, quantity: int) -> None:
        if entry is None:
            raise StockConflict(
                {"item_id": [f"Vendor does not carry this {self.kind.value} item"]},
                available=0,
            )
        if not self.has_stock(entry, quantity):
            raise self.shortage(entry)

    def check_cart_quantity(self, entry, quantity: int) -> None:
        """Validate a prospective cart quantity for one item."""
        self.check_available(entry, quantity)
        if quantity > self.cap:
            raise ValidationError(
                {"quantity": [f"Cannot exceed max quantity of {self.cap} for a single {self.kind.value} item"]}
            )


class RetailStock(StockPolicy):
    kind = ItemKind.RETAIL
    cap = RETAIL_ITEM_CAP

    def has_stock(self, entry, quantity):
        return entry is not None and (entry.quantity or 0) >= quantity

    def shortage(self, entry):
        available = entry.quantity or 0
        return StockConflict({"quantity": [f"Only {available} unit(s) available"]}, available=available)

    def consume(self, repository, entry, quantity):
        return repository.decrement(entry.entry_key, quantity)

    def restore(self, repository, entry, quantity):
        return repository.increment(entry.entry_key, quantity)

    def is_suggestible(self, entry):
        return (entry.quantity or 0) > OVERSTOCK_THRESHOLD


class ProduceStock(StockPolicy):
    kind = ItemKind.PRODUCE
    cap = PRODUCE_ITEM_CAP

    def has_stock(self, entry, quantity):  # noqa: ARG002
        return entry is not None and entry.availability == Availability.AVAILABLE.value

    def shortage(self, entry):  # noqa: ARG002
        return StockConflict({"availability": ["Produce item is not available"]}, available=0)

    def consume(self, repository, entry, quantity):  # noqa: ARG002
        # Produce is prepared to order, so a sale keeps it available
        repository.mark_available(entry.entry_key)

    def restore(self, repository, entry, quantity):  # noqa: ARG002
        return None

    def is_suggestible(self, entry):
        return entry.availability == Availability.AVAILABLE.value


_POLICIES = {
    ItemKind.RETAIL: RetailStock(),
    ItemKind.PRODUCE: ProduceStock(),
}


def policy_for(kind) -> StockPolicy:
    return _POLICIES[ItemKind.parse(kind)]
