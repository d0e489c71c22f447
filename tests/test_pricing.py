import unittest
from datetime import datetime, timedelta, timezone

from db.models import CartItem, Product
from shop.pricing import compute_totals, effective_price, shipping_fee, subtotal
from shop.shipping import DEFAULT_SHIPPING_RATES, merge_rates, parse_rate

NOW = datetime(2025, 11, 1, 12, 0, 0, tzinfo=timezone.utc)


def item(pid: str, price: float, qty: int) -> CartItem:
    return CartItem(pid, pid, pid, price, "", qty)


def product(**kwargs) -> Product:
    base = dict(id="p", name="منتج", name_en="Product", price=100.0, category="bags")
    base.update(kwargs)
    return Product(**base)


class PricingTestCase(unittest.TestCase):
    def test_serum_to_texas(self):
        totals = compute_totals([item("p2", 45.0, 2)], "Texas", DEFAULT_SHIPPING_RATES)
        self.assertEqual(totals.subtotal, 90.0)
        self.assertEqual(totals.shipping_fee, 15.0)
        self.assertEqual(totals.grand_total, 105.0)

    def test_unlisted_region_ships_free(self):
        totals = compute_totals([item("p2", 45.0, 2)], "Unlisted", DEFAULT_SHIPPING_RATES)
        self.assertEqual(totals.shipping_fee, 0.0)
        self.assertEqual(totals.grand_total, 90.0)
        self.assertEqual(shipping_fee("", DEFAULT_SHIPPING_RATES), 0.0)

    def test_totals_ignore_line_order(self):
        lines = [item("a", 19.99, 3), item("b", 0.1, 7), item("c", 120.0, 1)]
        forward = compute_totals(lines, "Michigan", DEFAULT_SHIPPING_RATES)
        backward = compute_totals(list(reversed(lines)), "Michigan", DEFAULT_SHIPPING_RATES)
        self.assertEqual(forward, backward)
        self.assertEqual(forward.subtotal, 180.67)
        self.assertEqual(forward.grand_total, 189.67)

    def test_empty_cart(self):
        self.assertEqual(subtotal([]), 0.0)
        self.assertEqual(compute_totals([], "Texas", {"Texas": 15}).grand_total, 15.0)


class EffectivePriceTestCase(unittest.TestCase):
    def test_list_price(self):
        self.assertEqual(effective_price(product(), NOW), 100.0)

    def test_permanent_discount(self):
        p = product(discount_type="permanent", discount_price=99.0)
        self.assertEqual(effective_price(p, NOW), 99.0)

    def test_timed_discount_until_it_ends(self):
        p = product(
            discount_type="timed", discount_price=80.0, discount_end=NOW + timedelta(days=1)
        )
        self.assertEqual(effective_price(p, NOW), 80.0)
        self.assertEqual(effective_price(p, NOW + timedelta(days=2)), 100.0)

    def test_timed_discount_naive_end_is_utc(self):
        p = product(
            discount_type="timed",
            discount_price=80.0,
            discount_end=datetime(2025, 11, 1, 13, 0, 0),
        )
        self.assertEqual(effective_price(p, NOW), 80.0)

    def test_percentage_discount(self):
        self.assertEqual(effective_price(product(discount_percentage=10), NOW), 90.0)
        self.assertEqual(effective_price(product(price=28.0, discount_percentage=10), NOW), 25.2)

    def test_permanent_wins_over_percentage(self):
        p = product(discount_type="permanent", discount_price=70.0, discount_percentage=50)
        self.assertEqual(effective_price(p, NOW), 70.0)


class ShippingTableTestCase(unittest.TestCase):
    def test_default_table(self):
        self.assertEqual(len(DEFAULT_SHIPPING_RATES), 50)
        self.assertEqual(DEFAULT_SHIPPING_RATES["Texas"], 15)
        self.assertEqual(DEFAULT_SHIPPING_RATES["Michigan"], 9)

    def test_stored_rates_override_defaults(self):
        table = merge_rates({"Texas": 22.5, "Puerto Rico": 30})
        self.assertEqual(table["Texas"], 22.5)
        self.assertEqual(table["Puerto Rico"], 30)
        self.assertEqual(table["Ohio"], 11.0)

    def test_parse_rate(self):
        self.assertEqual(parse_rate("12.5"), 12.5)
        self.assertEqual(parse_rate("abc"), 0.0)
        self.assertEqual(parse_rate("-3"), 0.0)
        self.assertEqual(parse_rate(None), 0.0)


if __name__ == "__main__":
    unittest.main()
