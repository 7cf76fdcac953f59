"""
Shopping cart operations.

A cart is a list of ``{"product_id": str, "quantity": int}`` lines. The
service works on those lists and leaves storage to the caller: anonymous
carts live in the session, signed-in carts in the ``carts`` collection.
Prices are never stored in the cart; they are read from the catalogue
whenever the cart is rendered.
"""

from typing import Any, Optional

from service_hub.core.logging import get_logger
from service_hub.schemas.cart import MAX_QUANTITY_PER_ITEM
from service_hub.services.products.repository import ProductRepository

logger = get_logger(__name__)

CartItems = list[dict[str, Any]]


class CartError(Exception):
    """Cart operation rejected."""

    def __init__(self, message: str, code: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context


def _find_line(items: CartItems, product_id: str) -> Optional[dict[str, Any]]:
    for line in items:
        if line["product_id"] == product_id:
            return line
    return None


class CartService:
    """Validates cart changes against the catalogue and renders carts."""

    def __init__(self, products: ProductRepository):
        self.products = products

    async def _require_product(self, product_id: str) -> dict[str, Any]:
        product = await self.products.get(product_id)
        if product is None:
            raise CartError(
                f"Product {product_id} not found",
                code="PRODUCT_NOT_FOUND",
                product_id=product_id,
            )
        return product

    @staticmethod
    def _check_quantity(product: dict[str, Any], quantity: int) -> None:
        if quantity > MAX_QUANTITY_PER_ITEM:
            raise CartError(
                f"At most {MAX_QUANTITY_PER_ITEM} units per item",
                code="QUANTITY_LIMIT",
                product_id=product["id"],
                quantity=quantity,
            )
        if quantity > product.get("stock", 0):
            raise CartError(
                f"Only {product.get('stock', 0)} units of {product['name']} available",
                code="INSUFFICIENT_STOCK",
                product_id=product["id"],
                requested=quantity,
                available=product.get("stock", 0),
            )

    async def add_item(self, items: CartItems, product_id: str, quantity: int) -> CartItems:
        """
        Add units of a product, merging with an existing line.

        Raises:
            CartError: PRODUCT_NOT_FOUND, QUANTITY_LIMIT or INSUFFICIENT_STOCK
        """
        product = await self._require_product(product_id)
        updated = [dict(line) for line in items]
        line = _find_line(updated, product_id)
        new_quantity = quantity + (line["quantity"] if line else 0)
        self._check_quantity(product, new_quantity)

        if line:
            line["quantity"] = new_quantity
        else:
            updated.append({"product_id": product_id, "quantity": quantity})

        logger.info("Item added to cart", product_id=product_id, quantity=new_quantity)
        return updated

    async def update_item(self, items: CartItems, product_id: str, quantity: int) -> CartItems:
        """
        Set the quantity of a line; zero removes it.

        Raises:
            CartError: ITEM_NOT_FOUND, PRODUCT_NOT_FOUND, QUANTITY_LIMIT or
                INSUFFICIENT_STOCK
        """
        if _find_line(items, product_id) is None:
            raise CartError(
                "Item not in cart", code="ITEM_NOT_FOUND", product_id=product_id
            )
        if quantity == 0:
            return self.remove_item(items, product_id)

        product = await self._require_product(product_id)
        self._check_quantity(product, quantity)
        return [
            {**line, "quantity": quantity} if line["product_id"] == product_id else dict(line)
            for line in items
        ]

    @staticmethod
    def remove_item(items: CartItems, product_id: str) -> CartItems:
        if _find_line(items, product_id) is None:
            raise CartError(
                "Item not in cart", code="ITEM_NOT_FOUND", product_id=product_id
            )
        return [dict(line) for line in items if line["product_id"] != product_id]

    @staticmethod
    def merge_items(target: CartItems, incoming: CartItems) -> CartItems:
        """
        Merge an anonymous cart into a stored one.

        Quantities for the same product are summed and capped at the
        per-item maximum. Stock is checked later when the cart is rendered
        or checked out.
        """
        merged = [dict(line) for line in target]
        for item in incoming:
            line = _find_line(merged, item["product_id"])
            if line:
                line["quantity"] = min(line["quantity"] + item["quantity"], MAX_QUANTITY_PER_ITEM)
            else:
                merged.append(
                    {
                        "product_id": item["product_id"],
                        "quantity": min(item["quantity"], MAX_QUANTITY_PER_ITEM),
                    }
                )
        return merged

    async def build_cart(self, items: CartItems) -> dict[str, Any]:
        """
        Render a cart with current product details and totals.

        Lines whose product is gone or deactivated are dropped.
        """
        products = await self.products.get_many([line["product_id"] for line in items])

        lines = []
        for item in items:
            product = products.get(item["product_id"])
            if product is None:
                logger.debug("Dropping unavailable cart item", product_id=item["product_id"])
                continue
            lines.append(
                {
                    "product_id": item["product_id"],
                    "name": product["name"],
                    "price": product["price"],
                    "quantity": item["quantity"],
                    "subtotal": round(product["price"] * item["quantity"], 2),
                    "image_url": product.get("image_url"),
                    "stock": product.get("stock", 0),
                }
            )

        return {
            "items": lines,
            "total": round(sum(line["subtotal"] for line in lines), 2),
            "item_count": sum(line["quantity"] for line in lines),
        }
