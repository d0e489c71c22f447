import json
import os
import tempfile
import unittest
from datetime import datetime, timezone

from db.models import ColorOption, Product
from shop.cart import Cart

NOW = datetime(2025, 11, 1, 12, 0, 0, tzinfo=timezone.utc)

IVORY = ColorOption("ivory", "عاجي", "Ivory", "#FFFFF0")
BEIGE = ColorOption("beige", "بيج", "Beige", "#F5F5DC")

SERUM = Product("p2", "سيروم الورد المرطب", "Hydrating Rose Serum", 45.0, "skincare", stock=25)
FOUNDATION = Product(
    "p1", "كريم أساس حريري", "Silk Finish Foundation", 32.0, "makeup",
    stock=40, colors=(IVORY, BEIGE),
)  # fmt: skip
MASK = Product("p3", "ماسك مغذي للشعر", "Nourishing Hair Mask", 28.0, "haircare", discount_percentage=10)


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "sub", "cart.json")
        self.cart = Cart(self.path)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_add_bumps_same_line(self):
        self.cart.add(SERUM, now=NOW)
        self.cart.add(SERUM, now=NOW)
        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 2)
        self.assertEqual(self.cart.total_items, 2)
        self.assertEqual(self.cart.subtotal, 90.0)

    def test_colors_get_separate_lines(self):
        self.cart.add(FOUNDATION, IVORY, now=NOW)
        self.cart.add(FOUNDATION, BEIGE, now=NOW)
        self.cart.add(FOUNDATION, IVORY, now=NOW)
        self.assertEqual(len(self.cart.items), 2)
        self.assertEqual(self.cart.find("p1", "ivory").quantity, 2)
        self.assertEqual(self.cart.find("p1", "beige").quantity, 1)
        self.assertIsNone(self.cart.find("p1"))

        self.cart.remove("p1", "beige")
        self.assertEqual([i.color_id for i in self.cart.items], ["ivory"])

    def test_add_uses_discounted_price(self):
        line = self.cart.add(MASK, now=NOW)
        self.assertEqual(line.price, 25.2)

    def test_decrement_to_zero_removes_line(self):
        self.cart.add(SERUM, now=NOW)
        self.cart.add(MASK, now=NOW)
        self.cart.update_quantity("p2", -1)
        self.assertIsNone(self.cart.find("p2"))
        self.assertEqual(len(self.cart.items), 1)

        # never goes below zero, even with a large delta
        self.cart.update_quantity("p3", -5)
        self.assertTrue(self.cart.is_empty())

    def test_increment(self):
        self.cart.add(SERUM, now=NOW)
        self.cart.update_quantity("p2", 2)
        self.assertEqual(self.cart.find("p2").quantity, 3)

    def test_clear_is_idempotent(self):
        self.cart.add(SERUM, now=NOW)
        self.cart.clear()
        self.assertTrue(self.cart.is_empty())
        self.cart.clear()
        self.assertTrue(self.cart.is_empty())
        self.assertEqual(Cart(self.path).load().items, [])

    def test_persists_across_instances(self):
        self.cart.add(FOUNDATION, BEIGE, now=NOW)
        self.cart.add(SERUM, now=NOW)

        restored = Cart(self.path).load()
        self.assertEqual(restored.items, self.cart.items)
        self.assertEqual(restored.find("p1", "beige").color, BEIGE)

        # Arabic text is stored readable
        with open(self.path, encoding="utf-8") as f:
            self.assertIn("سيروم", f.read())

    def test_corrupt_file_loads_empty(self):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertTrue(Cart(self.path).load().is_empty())

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([{"name": "missing product id"}], f)
        self.assertTrue(Cart(self.path).load().is_empty())

    def test_failed_save_leaves_no_partial_file(self):
        self.cart.add(SERUM, now=NOW)
        os.remove(self.path)
        os.mkdir(self.path)

        with self.assertRaises(OSError):
            self.cart.clear()
        self.assertTrue(self.cart.is_empty())
        self.assertFalse(os.path.exists(self.path + ".tmp"))

    def test_cart_without_path_stays_in_memory(self):
        cart = Cart()
        cart.add(SERUM, now=NOW)
        self.assertEqual(cart.load().total_items, 1)


if __name__ == "__main__":
    unittest.main()
