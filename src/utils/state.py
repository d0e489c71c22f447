from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from db.models import Session
from shop.backend import Backend
from shop.cart import Cart
from shop.identity import is_admin, phone_session
from shop.phone_gate import PhoneGate
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - backend: service handle built by the app at startup
      - cart: this device's cart, loaded from local storage
      - session: signed-in identity, or None for a guest
      - lang: "ar" | "en"
      - gate: phone verification gate for this session
    """

    backend: Backend
    cart: Cart
    lang: Literal["ar", "en"] = "ar"
    session: Optional[Session] = None
    gate: Optional[PhoneGate] = field(default=None)

    def __post_init__(self):
        if self.gate is None:
            self.gate = PhoneGate(self.backend.phone_auth)

    @property
    def uid(self) -> Optional[str]:
        return self.session.uid if self.session else None

    @property
    def role(self) -> Literal["admin", "customer", "guest"]:
        if self.session is None or not self.session.is_authenticated:
            return "guest"
        if is_admin(self.session, self.backend.settings):
            return "admin"
        return "customer"

    def sign_in(self, session: Session) -> None:
        self.session = session
        _logger.info(f"Signed in as {session.uid} ({self.role})")

    async def sign_in_with_verified_phone(self) -> Optional[Session]:
        """
        A verified phone doubles as a login: adopt the gate's identity unless
        someone is already signed in.
        """
        if not self.gate.is_verified:
            return None
        if self.session is None or not self.session.is_authenticated:
            self.sign_in(
                await phone_session(self.backend.db, self.gate.uid, self.gate.verified_phone)
            )
        return self.session

    async def sign_out(self) -> None:
        if self.session is not None:
            _logger.info(f"Signed out {self.session.uid}")
        self.session = None
        await self.gate.reset()
        # a verified gate is terminal, so signing out needs a fresh one
        self.gate = PhoneGate(self.backend.phone_auth)

    def toggle_lang(self) -> str:
        self.lang = "en" if self.lang == "ar" else "ar"
        return self.lang
