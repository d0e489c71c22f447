import os
import tempfile
import unittest
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from db.database import Database
from db.models import Session
from shop.backend import Backend
from shop.cart import Cart
from shop.phone_auth import LocalPhoneAuth
from utils.config import Settings

ADMIN_EMAIL = "admin@boutique.test"
NOW = datetime(2025, 11, 1, 12, 0, 0, tzinfo=timezone.utc)


class SmsOutbox:
    """Collects (phone, code) pairs instead of sending them."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def __call__(self, phone: str, code: str) -> None:
        self.sent.append((phone, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


def sequential_codes(codes: Iterable[str]):
    it = iter(codes)
    return lambda: next(it)


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh seeded store in a temp dir, plus a Backend wired to it."""

    codes: Iterable[str] = ("111111", "222222", "333333", "444444", "555555", "666666")

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        self.cart_path = os.path.join(self.temp_dir.name, "cart.json")
        self.settings = Settings(
            db_path=self.db_path,
            cart_path=self.cart_path,
            admin_email=ADMIN_EMAIL,
        )

    async def asyncSetUp(self):
        self.db = Database(self.db_path)
        self.outbox = SmsOutbox()
        self.phone_auth = LocalPhoneAuth(
            self.db,
            sms_sender=self.outbox,
            code_factory=sequential_codes(self.codes),
        )
        self.backend = Backend(self.settings, db=self.db, phone_auth=self.phone_auth)
        self.cart = Cart(self.cart_path)

        # touch initialization by opening a connection
        async with self.db.connect() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM products;")
            await cur.fetchone()
            await cur.close()

    async def asyncTearDown(self):
        await self.backend.aclose()

    def tearDown(self):
        self.temp_dir.cleanup()

    @staticmethod
    def admin_session() -> Session:
        return Session(uid="admin-1", email=ADMIN_EMAIL, display_name="Admin")

    @staticmethod
    def customer_session(uid: str = "cust-1") -> Session:
        return Session(uid=uid, email="shopper@example.com", display_name="Shopper")
