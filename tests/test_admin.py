from datetime import timedelta

import aiosqlite

from db import crud
from db.models import UserProfile
from shop.admin import can_transition, change_order_status, update_shipping_rates
from shop.consent import capture_consent
from shop.errors import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderValidationError,
    PersistenceError,
    PhoneAlreadyRegisteredError,
    UnauthorizedError,
)
from shop.identity import (
    GUEST_USER_ID,
    complete_profile,
    is_admin,
    login_email_user,
    register_email_user,
    resolve_user_id,
    save_profile,
)
from shop.shipping import load_rate_table
from support import NOW, StoreTestCase
from test_crud import make_order


class AdminTestCase(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        await crud.create_order(self.db, make_order("o1"))

    # ---------- order status ----------

    def test_transition_table(self):
        self.assertTrue(can_transition("pending", "processing"))
        self.assertTrue(can_transition("shipped", "cancelled"))
        self.assertFalse(can_transition("delivered", "pending"))
        self.assertFalse(can_transition("cancelled", "processing"))
        self.assertFalse(can_transition("pending", "delivered"))

    async def test_walk_order_to_delivered(self):
        admin = self.admin_session()
        for status in ("processing", "shipped", "delivered"):
            order = await change_order_status(self.backend, admin, "o1", status)
            self.assertEqual(order.status, status)

        with self.assertRaises(InvalidStatusTransitionError):
            await change_order_status(self.backend, admin, "o1", "cancelled")

    async def test_non_admins_cannot_change_status(self):
        for session in (None, self.customer_session()):
            with self.assertRaises(UnauthorizedError):
                await change_order_status(self.backend, session, "o1", "processing")
        self.assertEqual((await crud.get_order(self.db, "o1")).status, "pending")

    async def test_unknown_order(self):
        with self.assertRaises(OrderNotFoundError):
            await change_order_status(self.backend, self.admin_session(), "nope", "processing")

    async def test_status_write_failure(self):
        async def broken(*_args, **_kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        orig = crud.set_order_status
        try:
            crud.set_order_status = broken  # type: ignore
            with self.assertRaises(PersistenceError) as ctx:
                await change_order_status(self.backend, self.admin_session(), "o1", "processing")
        finally:
            crud.set_order_status = orig  # restore
        self.assertEqual(ctx.exception.path, "orders/o1")
        self.assertEqual(ctx.exception.operation, "update")

    # ---------- shipping rates ----------

    async def test_save_rates_overlays_defaults(self):
        rates = await load_rate_table(self.db)
        rates["Texas"] = 25.0
        await update_shipping_rates(self.backend, self.admin_session(), rates, NOW)

        table = await load_rate_table(self.db)
        self.assertEqual(table["Texas"], 25.0)
        self.assertEqual(table["Michigan"], 9.0)

    async def test_customers_cannot_save_rates(self):
        with self.assertRaises(UnauthorizedError):
            await update_shipping_rates(self.backend, self.customer_session(), {"Texas": 0})
        self.assertEqual((await load_rate_table(self.db))["Texas"], 15.0)


class IdentityTestCase(StoreTestCase):
    def test_resolve_user_id(self):
        self.assertEqual(resolve_user_id(None), GUEST_USER_ID)
        self.assertEqual(resolve_user_id(self.customer_session("u9")), "u9")

    def test_is_admin(self):
        self.assertTrue(is_admin(self.admin_session(), self.settings))
        self.assertFalse(is_admin(self.customer_session(), self.settings))
        self.assertFalse(is_admin(None, self.settings))

    async def test_phone_unique_across_profiles(self):
        await save_profile(self.db, UserProfile("u1", "Mona", "+15125550100"), NOW)
        with self.assertRaises(PhoneAlreadyRegisteredError):
            await save_profile(self.db, UserProfile("u2", "Sara", "+15125550100"), NOW)
        # saving your own number again is fine
        await save_profile(
            self.db, UserProfile("u1", address="1 Main St", phone="+15125550100"), NOW
        )
        self.assertEqual((await crud.get_profile(self.db, "u1")).address, "1 Main St")

    async def test_email_register_and_login(self):
        await register_email_user(
            self.db, "u3", "Sara", "sara@example.com", "secret1", "+15125550111", NOW
        )
        with self.assertRaises(ValueError):
            await register_email_user(
                self.db, "u4", "Other", "SARA@example.com", "pw1234", "+15125550112", NOW
            )
        with self.assertRaises(PhoneAlreadyRegisteredError):
            await register_email_user(
                self.db, "u5", "Other", "other@example.com", "pw1234", "+15125550111", NOW
            )

        session = await login_email_user(self.db, "sara@example.com", "secret1")
        self.assertEqual(session.uid, "u3")
        self.assertEqual(session.display_name, "Sara")
        self.assertEqual(session.phone, "+15125550111")
        self.assertIsNone(await login_email_user(self.db, "sara@example.com", "wrong"))
        self.assertIsNone(await login_email_user(self.db, "nobody@example.com", "secret1"))


class ProfileCompletionTestCase(StoreTestCase):
    async def test_complete_profile(self):
        session = await complete_profile(
            self.db, self.customer_session(), " +15125550100 ", " 1 Main St, Austin ", NOW
        )
        self.assertEqual(session.uid, "cust-1")
        self.assertEqual(session.phone, "+15125550100")
        # blank name keeps the one already known
        self.assertEqual(session.display_name, "Shopper")

        profile = await crud.get_profile(self.db, "cust-1")
        self.assertEqual(profile.phone, "+15125550100")
        self.assertEqual(profile.address, "1 Main St, Austin")

        # a second save merges over the first
        await complete_profile(self.db, session, "+15125550100", "2 Oak Ave", NOW, "Mona")
        profile = await crud.get_profile(self.db, "cust-1")
        self.assertEqual(profile.address, "2 Oak Ave")
        self.assertEqual(profile.full_name, "Mona")

    async def test_required_fields(self):
        cases = {
            "phone": ("5125550100", "1 Main St"),
            "address": ("+15125550100", "   "),
        }
        for field, (phone, address) in cases.items():
            with self.subTest(field=field):
                with self.assertRaises(OrderValidationError) as ctx:
                    await complete_profile(self.db, self.customer_session(), phone, address, NOW)
                self.assertEqual(ctx.exception.field, field)
        self.assertIsNone(await crud.get_profile(self.db, "cust-1"))

    async def test_guests_cannot_complete_profile(self):
        with self.assertRaises(UnauthorizedError):
            await complete_profile(self.db, None, "+15125550100", "1 Main St", NOW)

    async def test_phone_held_by_another_account(self):
        await save_profile(self.db, UserProfile("u1", "Sara", "+15125550100"), NOW)
        with self.assertRaises(PhoneAlreadyRegisteredError):
            await complete_profile(
                self.db, self.customer_session(), "+15125550100", "1 Main St", NOW
            )
        self.assertIsNone(await crud.get_profile(self.db, "cust-1"))

    async def test_profile_write_failure(self):
        async def broken(*_args, **_kwargs):
            raise aiosqlite.OperationalError("attempt to write a readonly database")

        orig = crud.upsert_profile
        try:
            crud.upsert_profile = broken  # type: ignore
            with self.assertRaises(PersistenceError) as ctx:
                await complete_profile(
                    self.db, self.customer_session(), "+15125550100", "1 Main St", NOW
                )
        finally:
            crud.upsert_profile = orig  # restore
        self.assertEqual(ctx.exception.path, "users/cust-1")
        self.assertEqual(ctx.exception.operation, "update")


class ConsentTestCase(StoreTestCase):
    def test_capture_consent(self):
        consent = capture_consent(True, "2024-06", NOW)
        self.assertTrue(consent.agreed)
        self.assertEqual(consent.agreed_at, NOW)
        with self.assertRaises(OrderValidationError) as ctx:
            capture_consent(False, "2024-06", NOW + timedelta(seconds=1))
        self.assertEqual(ctx.exception.field, "terms")
