"""Phone verification gate guarding checkout.

States::

    UNVERIFIED --request_code--> CODE_REQUESTED --confirm_code--> VERIFIED
        ^                              |
        +------ reset / re-request ----+

A wrong code keeps the gate in CODE_REQUESTED so the shopper can type it
again, until the provider burns the challenge after too many misses and the
gate falls back to UNVERIFIED. Re-requesting a code always cancels the
pending challenge first.
VERIFIED is terminal for the session.
"""

from enum import Enum
from typing import Optional

from shop.errors import (
    InvalidCodeError,
    InvalidPhoneNumberError,
    TooManyRequestsError,
    VerificationError,
)
from shop.phone_auth import PhoneAuthProvider
from utils.logger import get_logger
from utils.pure import digits_only, normalize_country_code

_logger = get_logger(__name__)

MIN_NATIONAL_DIGITS = 7


class GateState(str, Enum):
    UNVERIFIED = "unverified"
    CODE_REQUESTED = "code-requested"
    VERIFIED = "verified"


class PhoneGate:
    def __init__(self, provider: PhoneAuthProvider):
        self.provider = provider
        self.state = GateState.UNVERIFIED
        self.pending_phone: Optional[str] = None
        self.verified_phone: Optional[str] = None
        self.uid: Optional[str] = None
        self._handle: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.state is GateState.VERIFIED

    async def reset(self) -> None:
        """Drop any pending challenge and return to UNVERIFIED."""
        if self.state is GateState.VERIFIED:
            return
        handle, self._handle = self._handle, None
        self.pending_phone = None
        self.state = GateState.UNVERIFIED
        if handle:
            try:
                await self.provider.cancel(handle)
            except Exception as e:
                # the provider invalidates old challenges on the next send anyway
                _logger.warning(f"Could not cancel challenge {handle}: {e}")

    async def request_code(self, country_code: str, national_number: str) -> str:
        """
        Send a one-time code to country_code + national_number.

        Each call may trigger a billable SMS; callers must not retry on their
        own. Returns the E.164 number the code was sent to.
        """
        if self.state is GateState.VERIFIED:
            return self.verified_phone

        national = digits_only(national_number)
        prefix = normalize_country_code(country_code)
        if len(national) < MIN_NATIONAL_DIGITS or not prefix:
            raise VerificationError("invalid-number", f"{country_code} {national_number}")
        phone = prefix + national

        await self.reset()
        try:
            handle = await self.provider.send_code(phone)
        except InvalidPhoneNumberError as e:
            raise VerificationError("invalid-number", phone) from e
        except TooManyRequestsError as e:
            raise VerificationError("rate-limited", phone) from e
        except Exception as e:
            _logger.error(f"Phone challenge for {phone} failed: {e}")
            raise VerificationError("generic", str(e)) from e

        self._handle = handle
        self.pending_phone = phone
        self.state = GateState.CODE_REQUESTED
        _logger.info(f"Verification code requested for {phone}")
        return phone

    async def confirm_code(self, code: str) -> str:
        """Confirm the pending challenge; returns the authenticated uid."""
        if self.state is GateState.VERIFIED:
            return self.uid
        if self.state is not GateState.CODE_REQUESTED or not self._handle:
            raise VerificationError("no-pending-code")

        try:
            uid = await self.provider.confirm(self._handle, code)
        except InvalidCodeError as e:
            raise VerificationError("invalid-code") from e
        except TooManyRequestsError as e:
            # the challenge is burned; a new code has to be requested
            self._handle = None
            self.pending_phone = None
            self.state = GateState.UNVERIFIED
            raise VerificationError("rate-limited", e.phone) from e
        except Exception as e:
            _logger.error(f"Code confirmation for {self.pending_phone} failed: {e}")
            raise VerificationError("generic", str(e)) from e

        self.uid = uid
        self.verified_phone = self.pending_phone
        self.pending_phone = None
        self._handle = None
        self.state = GateState.VERIFIED
        _logger.info(f"Phone {self.verified_phone} verified as {uid}")
        return uid
