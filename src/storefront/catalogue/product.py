"""Product aggregate — the catalogue snapshot checkout prices and stock-checks against.

Checkout never edits products. It reads the current price to build priced
cart lines and the live stock count to gate the order.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Integer, String

from storefront.domain import storefront


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=1024)

    @classmethod
    def create(cls, name, price, stock=0, image=None, id=None):
        kwargs = {"name": name, "price": price, "stock": stock, "image": image}
        if id is not None:
            kwargs["id"] = id
        return cls(**kwargs)


@storefront.repository(part_of=Product)
class ProductRepository:
    def find_many(self, product_ids) -> dict[str, Product]:
        """Load the given products keyed by id. Unknown ids are left out."""
        found = {}
        for product_id in dict.fromkeys(str(pid) for pid in product_ids):
            try:
                found[product_id] = self.get(product_id)
            except ObjectNotFoundError:
                continue
        return found
