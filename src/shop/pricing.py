"""Price calculations for the cart and checkout screens.

Everything here is a pure function of its arguments: the checkout screen
recomputes totals on every render, and only the live rate table can make two
renders disagree.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from db.models import CartItem, Product


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    shipping_fee: float
    grand_total: float


def subtotal(items: Iterable[CartItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


def shipping_fee(region: str, rates: Mapping[str, float]) -> float:
    """Fee for the region; a region missing from the table ships for 0."""
    return round(float(rates.get(region, 0.0)), 2)


def compute_totals(
    items: Iterable[CartItem], region: str, rates: Mapping[str, float]
) -> PriceBreakdown:
    sub = subtotal(items)
    fee = shipping_fee(region, rates)
    return PriceBreakdown(subtotal=sub, shipping_fee=fee, grand_total=round(sub + fee, 2))


def effective_price(product: Product, now: Optional[datetime] = None) -> float:
    """
    Price a shopper pays when adding the product to the cart.

    Precedence: a permanent discount price, then a timed discount price while
    it has not yet ended, then a percentage discount, then the list price.
    """
    now = now or datetime.now(timezone.utc)

    if product.discount_type == "permanent" and product.discount_price:
        return float(product.discount_price)

    if (
        product.discount_type == "timed"
        and product.discount_price
        and product.discount_end is not None
    ):
        # naive timestamps are UTC
        end = product.discount_end
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if now < end:
            return float(product.discount_price)

    if product.discount_percentage and product.discount_percentage > 0:
        return round(product.price * (1 - product.discount_percentage / 100), 2)

    return float(product.price or 0.0)
