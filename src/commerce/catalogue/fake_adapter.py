"""In-memory catalogue for development and testing.

Products are registered at runtime. Price changes and removals take effect
immediately, which lets tests exercise checkout-time re-pricing.
"""

from dataclasses import replace

from commerce.catalogue.port import Catalogue, ProductSnapshot


class InMemoryCatalogue(Catalogue):
    def __init__(self) -> None:
        self.products: dict[str, ProductSnapshot] = {}

    def add_product(
        self,
        product_id: str,
        name: str,
        sku: str,
        price: float,
        current_stock: int = 0,
        variants: dict[str, float] | None = None,
        image_url: str | None = None,
        active: bool = True,
    ) -> ProductSnapshot:
        product = ProductSnapshot(
            product_id=product_id,
            name=name,
            sku=sku,
            price=price,
            current_stock=current_stock,
            variants=dict(variants or {}),
            image_url=image_url,
            active=active,
        )
        self.products[product_id] = product
        return product

    def set_price(self, product_id: str, price: float) -> None:
        self.products[product_id] = replace(self.products[product_id], price=price)

    def deactivate(self, product_id: str) -> None:
        self.products[product_id] = replace(self.products[product_id], active=False)

    def remove_product(self, product_id: str) -> None:
        self.products.pop(product_id, None)

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        return self.products.get(str(product_id))
