"""Catalogue port (abstract interface).

The commerce domain only reads products: price, name, SKU and variant price
adjustments are re-read at checkout. Catalogue CRUD lives elsewhere.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a catalogue product at the moment it was fetched."""

    product_id: str
    name: str
    sku: str
    price: float
    current_stock: int = 0
    variants: dict[str, float] = field(default_factory=dict)  # variant -> price adjustment
    image_url: str | None = None
    active: bool = True

    def has_variant(self, variant: str) -> bool:
        return not variant or variant in self.variants

    def unit_price(self, variant: str = "") -> float:
        """Catalogue price plus the variant's price adjustment."""
        return round(self.price + self.variants.get(variant, 0.0), 2)


class Catalogue(ABC):
    """Abstract catalogue interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Return the current product, or None when it does not exist."""
        ...
