from typing import Optional

from db.database import Database
from shop.notify import EmailJsNotifier
from shop.phone_auth import LocalPhoneAuth, PhoneAuthProvider
from shop.side_effects import BestEffort
from utils.config import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)


class Backend:
    """
    The storefront's handle on its external services: the store, the phone
    auth provider, the e-mail notifier and the best-effort task runner.

    Built once by the application and passed to the workflow; tests build
    their own with fakes in place of any collaborator.
    """

    def __init__(
        self,
        settings: Settings,
        db: Optional[Database] = None,
        phone_auth: Optional[PhoneAuthProvider] = None,
        notifier: Optional[EmailJsNotifier] = None,
        side_effects: Optional[BestEffort] = None,
    ):
        self.settings = settings
        self.db = db or Database(settings.db_path)
        self.phone_auth = phone_auth or LocalPhoneAuth(self.db)
        self.notifier = notifier or EmailJsNotifier.from_settings(settings)
        self.side_effects = side_effects or BestEffort()

    async def aclose(self) -> None:
        if self.side_effects.pending:
            _logger.info(f"Waiting for {self.side_effects.pending} side effects...")
        await self.side_effects.drain()
        self.notifier.close()
