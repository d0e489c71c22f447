"""Phone one-time-code provider.

The storefront only depends on the three-call ``PhoneAuthProvider`` protocol.
``LocalPhoneAuth`` implements it over the store: challenges live in the
``phone_challenges`` table and the code is handed to an ``SmsSender``, which by
default writes it to the log.
"""

import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Protocol

from db import crud
from db.database import Database
from db.models import PhoneChallenge, UserProfile
from shop.errors import InvalidCodeError, InvalidPhoneNumberError, TooManyRequestsError
from utils.logger import get_logger

_logger = get_logger(__name__)

E164_RE = re.compile(r"^\+[1-9]\d{7,14}$")

CODE_TTL = timedelta(minutes=10)
RATE_WINDOW = timedelta(minutes=10)
MAX_REQUESTS_PER_WINDOW = 5
# wrong codes allowed before a challenge is burned
MAX_CODE_ATTEMPTS = 5

SmsSender = Callable[[str, str], Awaitable[None]]


class PhoneAuthProvider(Protocol):
    async def send_code(self, phone: str) -> str:
        """Start a challenge for an E.164 number; return an opaque handle."""
        ...

    async def confirm(self, handle: str, code: str) -> str:
        """Check the code; return the uid now signed in under that phone."""
        ...

    async def cancel(self, handle: str) -> None:
        ...


async def log_sms(phone: str, code: str) -> None:
    _logger.info(f"SMS to {phone}: your verification code is {code}")


def _random_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class LocalPhoneAuth:
    """PhoneAuthProvider backed by the storefront database."""

    def __init__(
        self,
        db: Database,
        sms_sender: Optional[SmsSender] = None,
        code_factory: Callable[[], str] = _random_code,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.sms_sender = sms_sender or log_sms
        self.code_factory = code_factory
        self.clock = clock

    async def send_code(self, phone: str) -> str:
        if not E164_RE.match(phone or ""):
            raise InvalidPhoneNumberError(phone)

        now = self.clock()
        recent = await crud.count_recent_challenges(self.db, phone, now - RATE_WINDOW)
        if recent >= MAX_REQUESTS_PER_WINDOW:
            _logger.warning(f"Rate limit hit for {phone} ({recent} recent requests)")
            raise TooManyRequestsError(phone, RATE_WINDOW.total_seconds())

        # only the newest challenge for a number can be confirmed
        await crud.invalidate_pending_challenges(self.db, phone)
        challenge = PhoneChallenge(
            id=uuid.uuid4().hex,
            phone=phone,
            code=self.code_factory(),
            created_at=now,
            expires_at=now + CODE_TTL,
        )
        await crud.create_challenge(self.db, challenge)
        await self.sms_sender(phone, challenge.code)
        _logger.debug(f"Challenge {challenge.id} sent to {phone}")
        return challenge.id

    async def confirm(self, handle: str, code: str) -> str:
        challenge = await crud.get_challenge(self.db, handle)
        if (
            challenge is None
            or challenge.status != "pending"
            or self.clock() >= challenge.expires_at
        ):
            raise InvalidCodeError(handle)

        if not secrets.compare_digest(challenge.code, (code or "").strip()):
            misses = await crud.record_challenge_miss(self.db, handle, MAX_CODE_ATTEMPTS)
            if misses >= MAX_CODE_ATTEMPTS:
                _logger.warning(
                    f"Challenge {handle} for {challenge.phone} locked after {misses} wrong codes"
                )
                raise TooManyRequestsError(challenge.phone)
            raise InvalidCodeError(handle)

        if not await crud.close_challenge(self.db, handle, "used"):
            # lost a race with a newer request for the same number
            raise InvalidCodeError(handle)

        profile = await crud.find_profile_by_phone(self.db, challenge.phone)
        if profile is None:
            profile = UserProfile(uid=uuid.uuid4().hex, phone=challenge.phone)
            await crud.upsert_profile(self.db, profile, self.clock())
            _logger.info(f"New phone user {profile.uid} for {challenge.phone}")
        return profile.uid

    async def cancel(self, handle: str) -> None:
        await crud.close_challenge(self.db, handle, "invalidated")
