from datetime import timedelta

from db import crud
from shop.errors import InvalidCodeError, VerificationError
from shop.phone_auth import MAX_CODE_ATTEMPTS, MAX_REQUESTS_PER_WINDOW, LocalPhoneAuth
from shop.phone_gate import GateState, PhoneGate
from support import NOW, SmsOutbox, StoreTestCase, sequential_codes


class FailingProvider:
    async def send_code(self, phone):
        raise ConnectionError("sms gateway down")

    async def confirm(self, handle, code):
        raise AssertionError("not reached")

    async def cancel(self, handle):
        return None


class PhoneGateTestCase(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.gate = PhoneGate(self.phone_auth)

    async def test_happy_path(self):
        phone = await self.gate.request_code("1", "(512) 555-0100")
        self.assertEqual(phone, "+15125550100")
        self.assertEqual(self.gate.state, GateState.CODE_REQUESTED)
        self.assertEqual(self.outbox.sent, [("+15125550100", "111111")])

        uid = await self.gate.confirm_code("111111")
        self.assertTrue(self.gate.is_verified)
        self.assertEqual(self.gate.verified_phone, "+15125550100")

        # first verification creates the profile; the next one reuses it
        profile = await crud.get_profile(self.db, uid)
        self.assertEqual(profile.phone, "+15125550100")
        again = PhoneGate(self.phone_auth)
        await again.request_code("+1", "5125550100")
        self.assertEqual(await again.confirm_code(self.outbox.last_code), uid)

    async def test_wrong_code_keeps_code_requested(self):
        await self.gate.request_code("+1", "5125550100")
        with self.assertRaises(VerificationError) as ctx:
            await self.gate.confirm_code("000000")
        self.assertEqual(ctx.exception.kind, "invalid-code")
        self.assertEqual(self.gate.state, GateState.CODE_REQUESTED)

        # the shopper can simply retype it
        await self.gate.confirm_code("111111")
        self.assertEqual(self.gate.state, GateState.VERIFIED)

    async def test_wrong_codes_burn_the_challenge(self):
        await self.gate.request_code("+1", "5125550100")
        handle = self.gate._handle
        for _ in range(MAX_CODE_ATTEMPTS - 1):
            with self.assertRaises(VerificationError) as ctx:
                await self.gate.confirm_code("000000")
            self.assertEqual(ctx.exception.kind, "invalid-code")
        self.assertEqual(self.gate.state, GateState.CODE_REQUESTED)

        with self.assertRaises(VerificationError) as ctx:
            await self.gate.confirm_code("000000")
        self.assertEqual(ctx.exception.kind, "rate-limited")
        self.assertEqual(self.gate.state, GateState.UNVERIFIED)

        challenge = await crud.get_challenge(self.db, handle)
        self.assertEqual(challenge.status, "invalidated")
        self.assertEqual(challenge.attempts, MAX_CODE_ATTEMPTS)

        # the right code no longer helps, neither through the gate nor directly
        with self.assertRaises(VerificationError) as ctx:
            await self.gate.confirm_code("111111")
        self.assertEqual(ctx.exception.kind, "no-pending-code")
        with self.assertRaises(InvalidCodeError):
            await self.phone_auth.confirm(handle, "111111")

        # a fresh code works again
        await self.gate.request_code("+1", "5125550100")
        await self.gate.confirm_code("222222")
        self.assertTrue(self.gate.is_verified)

    async def test_rerequest_invalidates_previous_code(self):
        await self.gate.request_code("+1", "5125550100")
        first_handle = self.gate._handle
        await self.gate.request_code("+1", "5125550100")
        self.assertNotEqual(self.gate._handle, first_handle)
        self.assertEqual(
            (await crud.get_challenge(self.db, first_handle)).status, "invalidated"
        )

        with self.assertRaises(VerificationError) as ctx:
            await self.gate.confirm_code("111111")
        self.assertEqual(ctx.exception.kind, "invalid-code")
        await self.gate.confirm_code("222222")
        self.assertTrue(self.gate.is_verified)

    async def test_short_number_never_reaches_provider(self):
        with self.assertRaises(VerificationError) as ctx:
            await self.gate.request_code("+1", "555-01")
        self.assertEqual(ctx.exception.kind, "invalid-number")
        self.assertEqual(self.outbox.sent, [])
        self.assertEqual(self.gate.state, GateState.UNVERIFIED)

    async def test_provider_rejects_malformed_number(self):
        with self.assertRaises(VerificationError) as ctx:
            await self.gate.request_code("+1", "5125550100123456")
        self.assertEqual(ctx.exception.kind, "invalid-number")

    async def test_confirm_without_request(self):
        with self.assertRaises(VerificationError) as ctx:
            await self.gate.confirm_code("111111")
        self.assertEqual(ctx.exception.kind, "no-pending-code")

    async def test_rate_limited(self):
        codes = [f"{i:06d}" for i in range(MAX_REQUESTS_PER_WINDOW + 1)]
        gate = PhoneGate(
            LocalPhoneAuth(self.db, SmsOutbox(), sequential_codes(codes), clock=lambda: NOW)
        )
        for _ in range(MAX_REQUESTS_PER_WINDOW):
            await gate.request_code("+1", "5125550100")
        with self.assertRaises(VerificationError) as ctx:
            await gate.request_code("+1", "5125550100")
        self.assertEqual(ctx.exception.kind, "rate-limited")
        self.assertEqual(gate.state, GateState.UNVERIFIED)

    async def test_expired_code(self):
        clock = {"now": NOW}
        gate = PhoneGate(
            LocalPhoneAuth(
                self.db, SmsOutbox(), sequential_codes(["123456"]), clock=lambda: clock["now"]
            )
        )
        await gate.request_code("+1", "5125550100")
        clock["now"] = NOW + timedelta(minutes=11)
        with self.assertRaises(VerificationError) as ctx:
            await gate.confirm_code("123456")
        self.assertEqual(ctx.exception.kind, "invalid-code")

    async def test_provider_outage_is_generic(self):
        gate = PhoneGate(FailingProvider())
        with self.assertRaises(VerificationError) as ctx:
            await gate.request_code("+1", "5125550100")
        self.assertEqual(ctx.exception.kind, "generic")
        self.assertEqual(gate.state, GateState.UNVERIFIED)

    async def test_localized_messages(self):
        error = VerificationError("invalid-code")
        self.assertNotEqual(error.localized("ar"), error.localized("en"))
        self.assertEqual(VerificationError("whatever").kind, "generic")
