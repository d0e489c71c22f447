# client-local cart, persisted to a JSON file on this device only
import dataclasses
import json
import os
from datetime import datetime
from typing import List, Optional

from db.models import CartItem, ColorOption, Product
from shop.pricing import effective_price, subtotal
from utils.logger import get_logger

_logger = get_logger(__name__)


def _item_from_dict(data: dict) -> CartItem:
    color = data.get("color")
    return CartItem(
        product_id=str(data["product_id"]),
        name=data.get("name", ""),
        name_en=data.get("name_en", ""),
        price=float(data.get("price", 0.0)),
        image=data.get("image", ""),
        quantity=int(data.get("quantity", 1)),
        color=ColorOption(**color) if color else None,
    )


def _matches(item: CartItem, product_id: str, color_id: Optional[str]) -> bool:
    return item.product_id == product_id and item.color_id == color_id


class Cart:
    """
    Ordered lines keyed by (product id, color id). Every mutation is written
    through to `path` when one is given, so the cart survives restarts but is
    never shared with the server before checkout.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._items: List[CartItem] = []

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> float:
        return subtotal(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def find(self, product_id: str, color_id: Optional[str] = None) -> Optional[CartItem]:
        for item in self._items:
            if _matches(item, product_id, color_id):
                return item
        return None

    def add(
        self,
        product: Product,
        color: Optional[ColorOption] = None,
        now: Optional[datetime] = None,
    ) -> CartItem:
        """
        Add one unit. A line for the same product in the same color is bumped
        (price and image refreshed); a different color gets its own line.
        """
        price = effective_price(product, now)
        color_id = color.id if color else None
        for idx, item in enumerate(self._items):
            if _matches(item, product.id, color_id):
                updated = dataclasses.replace(
                    item,
                    quantity=item.quantity + 1,
                    price=price,
                    image=product.image or item.image,
                )
                self._items[idx] = updated
                self.save()
                return updated

        item = CartItem(
            product_id=product.id,
            name=product.name,
            name_en=product.name_en,
            price=price,
            image=product.image,
            quantity=1,
            color=color,
        )
        self._items.append(item)
        self.save()
        return item

    def update_quantity(
        self, product_id: str, delta: int, color_id: Optional[str] = None
    ) -> None:
        """
        Adjust quantity by delta, never below 0; lines that hit 0 are dropped.
        With color_id None every color of the product is adjusted.
        """
        updated: List[CartItem] = []
        for item in self._items:
            if item.product_id == product_id and (
                color_id is None or item.color_id == color_id
            ):
                item = dataclasses.replace(item, quantity=max(0, item.quantity + delta))
            if item.quantity > 0:
                updated.append(item)
        self._items = updated
        self.save()

    def remove(self, product_id: str, color_id: Optional[str] = None) -> None:
        self._items = [
            item
            for item in self._items
            if not (
                item.product_id == product_id
                and (color_id is None or item.color_id == color_id)
            )
        ]
        self.save()

    def clear(self) -> None:
        self._items = []
        self.save()

    # ---------------------------
    # Local storage
    # ---------------------------

    def load(self) -> "Cart":
        """Read the saved cart; a missing or unreadable file means an empty cart."""
        if not self.path or not os.path.exists(self.path):
            return self
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self._items = [_item_from_dict(d) for d in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            _logger.error(f"Failed to parse saved cart {self.path}: {e}")
            self._items = []
        return self

    def save(self) -> None:
        """Write the cart through to disk; on failure the partial file is removed."""
        if not self.path:
            return
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        tmp_path = self.path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(
                    [dataclasses.asdict(item) for item in self._items],
                    f,
                    ensure_ascii=False,
                    indent=2,
                )
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
