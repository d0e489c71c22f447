# application settings, read once from the environment (and .env) at startup
import os
from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv

DEFAULT_DB_PATH = "data/store.sqlite"
DEFAULT_CART_PATH = "data/cart.json"
DEFAULT_EMAILJS_ENDPOINT = "https://api.emailjs.com/api/v1.0/email/send"
DEFAULT_POLICY_VERSION = "2024-06"


def _env(name: str) -> Optional[str]:
    """Return a stripped env value, treating blank strings as unset."""
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    cart_path: str = DEFAULT_CART_PATH

    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    emailjs_public_key: Optional[str] = None
    emailjs_endpoint: str = DEFAULT_EMAILJS_ENDPOINT

    policy_version: str = DEFAULT_POLICY_VERSION

    admin_email: Optional[str] = None
    admin_phone: Optional[str] = None

    lang: Literal["ar", "en"] = "ar"
    debug: bool = False


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """
    Build Settings from environment variables.

    A .env file (or the given path) is loaded first; variables already present
    in the environment take precedence over the file.
    """
    load_dotenv(dotenv_path)

    lang = (_env("STORE_LANG") or "ar").lower()
    if lang not in ("ar", "en"):
        lang = "ar"

    return Settings(
        db_path=_env("STORE_DB_PATH") or DEFAULT_DB_PATH,
        cart_path=_env("STORE_CART_PATH") or DEFAULT_CART_PATH,
        emailjs_service_id=_env("EMAILJS_SERVICE_ID"),
        emailjs_template_id=_env("EMAILJS_TEMPLATE_ID"),
        emailjs_public_key=_env("EMAILJS_PUBLIC_KEY"),
        emailjs_endpoint=_env("EMAILJS_ENDPOINT") or DEFAULT_EMAILJS_ENDPOINT,
        policy_version=_env("STORE_POLICY_VERSION") or DEFAULT_POLICY_VERSION,
        admin_email=_env("STORE_ADMIN_EMAIL"),
        admin_phone=_env("STORE_ADMIN_PHONE"),
        lang=lang,
        debug=bool(_env("DEBUG")),
    )
