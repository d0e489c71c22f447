# who is acting: the signed-in user, or the shared guest sentinel
import dataclasses
from typing import Optional

import aiosqlite
import bcrypt

from db import crud
from db.database import Database
from db.models import Session, UserProfile
from shop.errors import (
    OrderValidationError,
    PersistenceError,
    PhoneAlreadyRegisteredError,
    UnauthorizedError,
)
from shop.phone_auth import E164_RE
from utils.config import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)

GUEST_USER_ID = "guest"


def resolve_user_id(session: Optional[Session]) -> str:
    """Orders from anonymous sessions are filed under GUEST_USER_ID."""
    if session is not None and session.is_authenticated:
        return session.uid
    return GUEST_USER_ID


def is_admin(session: Optional[Session], settings: Settings) -> bool:
    if session is None or not session.is_authenticated:
        return False
    if settings.admin_email and session.email:
        if session.email.lower() == settings.admin_email.lower():
            return True
    if settings.admin_phone and session.phone:
        if session.phone == settings.admin_phone:
            return True
    return False


async def save_profile(db: Database, profile: UserProfile, when) -> None:
    """
    Merge-write a profile after checking no other profile holds its phone.

    The check is a query followed by a write, not a storage constraint: two
    registrations racing with the same number can both pass it.
    """
    if profile.phone and await crud.phone_taken(db, profile.phone, profile.uid):
        raise PhoneAlreadyRegisteredError(profile.phone)
    await crud.upsert_profile(db, profile, when)


async def register_email_user(
    db: Database,
    uid: str,
    full_name: str,
    email: str,
    password: str,
    phone: str,
    when,
) -> UserProfile:
    """Create an email/password account; raises ValueError if the email is taken."""
    if not await crud.email_available(db, email):
        raise ValueError("Email already registered.")
    if phone and await crud.phone_taken(db, phone):
        raise PhoneAlreadyRegisteredError(phone)
    pwd_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    profile = UserProfile(uid=uid, full_name=full_name, phone=phone, email=email)
    await crud.create_email_user(db, profile, pwd_hash, when)
    _logger.info(f"Registered email user {uid}")
    return profile


async def login_email_user(db: Database, email: str, password: str) -> Optional[Session]:
    """Return a signed-in Session when email/password match; otherwise None."""
    creds = await crud.get_credentials(db, email)
    if not creds:
        return None
    uid, pwd_hash = creds
    if not bcrypt.checkpw(password.encode("utf-8"), pwd_hash.encode("utf-8")):
        return None
    profile = await crud.get_profile(db, uid)
    return Session(
        uid=uid,
        email=profile.email if profile else email,
        phone=(profile.phone or None) if profile else None,
        display_name=profile.full_name if profile else None,
    )


async def phone_session(db: Database, uid: str, phone: str) -> Session:
    profile = await crud.get_profile(db, uid)
    return Session(
        uid=uid,
        phone=phone,
        email=(profile.email or None) if profile else None,
        display_name=(profile.full_name or None) if profile else None,
    )


async def complete_profile(
    db: Database,
    session: Optional[Session],
    phone: str,
    address: str,
    when,
    full_name: str = "",
) -> Session:
    """
    Merge the delivery details of a signed-in user into their profile and
    return the session updated to match. Empty fields keep their stored value
    except phone and address, which are both required.
    """
    if session is None or not session.is_authenticated:
        raise UnauthorizedError("update profile")
    phone = (phone or "").strip()
    if not E164_RE.match(phone):
        raise OrderValidationError("phone")
    if not (address or "").strip():
        raise OrderValidationError("address")

    profile = UserProfile(
        uid=session.uid,
        full_name=(full_name or "").strip(),
        phone=phone,
        address=address.strip(),
    )
    try:
        await save_profile(db, profile, when)
    except aiosqlite.Error as e:
        raise PersistenceError(
            f"users/{session.uid}", "update", {"phone": phone, "address": profile.address}
        ) from e
    _logger.info(f"Profile {session.uid} completed")
    return dataclasses.replace(
        session,
        phone=phone,
        display_name=profile.full_name or session.display_name,
    )
