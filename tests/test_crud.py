from dataclasses import replace
from datetime import timedelta

from db import crud
from db.models import CustomerInfo, LegalConsent, Order, OrderItem, PhoneChallenge, UserProfile
from support import NOW, StoreTestCase


def make_order(order_id: str, user_id: str = "guest", created_at=NOW, status="pending") -> Order:
    return Order(
        id=order_id,
        customer=CustomerInfo("Mona Ali", "+15125550100", "Texas", "1 Main St"),
        items=(
            OrderItem("p2", "سيروم الورد المرطب", "Hydrating Rose Serum", 45.0, 2),
            OrderItem("p1", "كريم أساس حريري", "Silk Finish Foundation", 32.0, 1, "Ivory"),
        ),
        total_price=137.0,
        shipping_fee=15.0,
        status=status,
        created_at=created_at,
        user_id=user_id,
        consent=LegalConsent(True, "2024-06", created_at),
    )


class CrudTestCase(StoreTestCase):
    # ---------- Catalog ----------

    async def test_seeded_catalog(self):
        categories = await crud.list_categories(self.db)
        self.assertEqual(len(categories), 6)
        self.assertIn("skincare", {c.slug for c in categories})

        products = await crud.list_products(self.db)
        self.assertEqual([p.id for p in products], ["p1", "p2", "p3", "p4", "p5", "p6"])

        tote = await crud.get_product(self.db, "p5")
        self.assertEqual(tote.discount_type, "permanent")
        self.assertEqual(tote.discount_price, 99.0)
        self.assertEqual([c.id for c in tote.colors], ["black", "tan"])
        self.assertIsNone(await crud.get_product(self.db, "nope"))

    async def test_list_products_filters(self):
        skincare = await crud.list_products(self.db, category="skincare")
        self.assertEqual([p.id for p in skincare], ["p2"])

        # English name, Arabic name and description all match, case-insensitively
        self.assertEqual([p.id for p in await crud.list_products(self.db, query="ROSE SERUM")], ["p2"])
        self.assertEqual([p.id for p in await crud.list_products(self.db, query="حقيبة")], ["p5"])
        self.assertEqual(
            [p.id for p in await crud.list_products(self.db, query="mesh strap")], ["p6"]
        )
        self.assertEqual(await crud.list_products(self.db, category="bags", query="serum"), [])

    # ---------- Stock ----------

    async def test_increment_stock(self):
        self.assertTrue(await crud.increment_stock(self.db, "p2", -3))
        self.assertEqual((await crud.get_product(self.db, "p2")).stock, 22)

        # nothing reserves inventory, so stock may go below zero
        self.assertTrue(await crud.increment_stock(self.db, "p5", -10))
        self.assertEqual((await crud.get_product(self.db, "p5")).stock, -2)

        self.assertFalse(await crud.increment_stock(self.db, "missing", -1))

    # ---------- Orders ----------

    async def test_create_and_get_order(self):
        order = make_order("o1")
        await crud.create_order(self.db, order)

        got = await crud.get_order(self.db, "o1")
        self.assertEqual(got.customer, order.customer)
        self.assertEqual(got.items, order.items)
        self.assertEqual(got.total_price, 137.0)
        self.assertEqual(got.subtotal, 122.0)
        self.assertEqual(got.payment_method, "Cash on Delivery")
        self.assertEqual(got.created_at, NOW)
        self.assertTrue(got.consent.agreed)
        self.assertEqual(got.consent.policy_version, "2024-06")

        self.assertIsNone(await crud.get_order(self.db, "missing"))

    async def test_list_orders_newest_first_and_paginated(self):
        for i in range(3):
            await crud.create_order(
                self.db, make_order(f"u{i}", "cust-1", NOW + timedelta(minutes=i))
            )
        await crud.create_order(self.db, make_order("g1", "guest"))

        orders, total = await crud.list_orders_for_user(self.db, "cust-1", page=1, page_size=2)
        self.assertEqual(total, 3)
        self.assertEqual([o.id for o in orders], ["u2", "u1"])
        orders, _ = await crud.list_orders_for_user(self.db, "cust-1", page=2, page_size=2)
        self.assertEqual([o.id for o in orders], ["u0"])
        self.assertEqual(len(orders[0].items), 2)

        every, total_all = await crud.list_all_orders(self.db, page=1)
        self.assertEqual(total_all, 4)
        self.assertEqual(len(every), 4)

        none, zero = await crud.list_orders_for_user(self.db, "nobody", page=1)
        self.assertEqual((none, zero), ([], 0))

    async def test_set_order_status_is_compare_and_set(self):
        await crud.create_order(self.db, make_order("o1"))
        self.assertTrue(await crud.set_order_status(self.db, "o1", "pending", "processing"))
        # stale expectation loses
        self.assertFalse(await crud.set_order_status(self.db, "o1", "pending", "cancelled"))
        self.assertEqual((await crud.get_order(self.db, "o1")).status, "processing")
        self.assertFalse(await crud.set_order_status(self.db, "missing", "pending", "processing"))

    # ---------- Shipping rates ----------

    async def test_shipping_rates_upsert(self):
        self.assertEqual(await crud.get_stored_shipping_rates(self.db), {})
        await crud.save_shipping_rates(self.db, {"Texas": 15, "Ohio": 11}, NOW)
        await crud.save_shipping_rates(self.db, {"Texas": 20}, NOW)
        self.assertEqual(
            await crud.get_stored_shipping_rates(self.db), {"Texas": 20.0, "Ohio": 11.0}
        )

    # ---------- Profiles ----------

    async def test_profile_merge_and_phone_lookup(self):
        await crud.upsert_profile(
            self.db, UserProfile("u1", "Mona", "+15125550100", "1 Main St"), NOW
        )
        # empty fields keep what is stored
        await crud.upsert_profile(self.db, UserProfile("u1", address="2 Oak Ave"), NOW)

        profile = await crud.get_profile(self.db, "u1")
        self.assertEqual(profile.full_name, "Mona")
        self.assertEqual(profile.phone, "+15125550100")
        self.assertEqual(profile.address, "2 Oak Ave")

        self.assertEqual((await crud.find_profile_by_phone(self.db, "+15125550100")).uid, "u1")
        self.assertIsNone(await crud.find_profile_by_phone(self.db, "+15125550199"))

        self.assertTrue(await crud.phone_taken(self.db, "+15125550100"))
        self.assertFalse(await crud.phone_taken(self.db, "+15125550100", exclude_uid="u1"))
        self.assertIsNone(await crud.get_profile(self.db, "missing"))

    async def test_email_credentials(self):
        self.assertTrue(await crud.email_available(self.db, "a@example.com"))
        await crud.create_email_user(
            self.db, UserProfile("u2", "Sara", email="a@example.com"), "hash", NOW
        )
        self.assertFalse(await crud.email_available(self.db, "A@Example.com"))
        self.assertEqual(await crud.get_credentials(self.db, "a@example.com"), ("u2", "hash"))
        self.assertIsNone(await crud.get_credentials(self.db, "b@example.com"))

    # ---------- Phone challenges ----------

    async def test_challenge_lifecycle(self):
        challenge = PhoneChallenge("c1", "+15125550100", "123456", NOW, NOW + timedelta(minutes=10))
        await crud.create_challenge(self.db, challenge)
        await crud.create_challenge(self.db, replace(challenge, id="c2"))

        self.assertEqual(await crud.get_challenge(self.db, "c1"), challenge)
        self.assertEqual(
            await crud.count_recent_challenges(self.db, "+15125550100", NOW - timedelta(minutes=1)),
            2,
        )
        self.assertEqual(
            await crud.count_recent_challenges(self.db, "+15125550100", NOW + timedelta(minutes=1)),
            0,
        )

        self.assertTrue(await crud.close_challenge(self.db, "c1", "used"))
        # only pending challenges move
        self.assertFalse(await crud.close_challenge(self.db, "c1", "invalidated"))
        self.assertEqual(await crud.invalidate_pending_challenges(self.db, "+15125550100"), 1)
        self.assertEqual((await crud.get_challenge(self.db, "c2")).status, "invalidated")
        self.assertIsNone(await crud.get_challenge(self.db, "missing"))
