# order notification e-mail through the EmailJS REST API
import asyncio
from typing import Dict, Optional

import requests

from db.models import Order
from utils.config import Settings
from utils.i18n import pick
from utils.logger import get_logger

_logger = get_logger(__name__)

REQUEST_TIMEOUT = 10


def order_summary(order: Order, lang: str = "ar") -> str:
    """'Rose Serum (x2), Leather Tote (x1)' in the shopper's language."""
    return ", ".join(
        f"{pick(item.name, item.name_en, lang)} (x{item.quantity})" for item in order.items
    )


def build_template_params(order: Order, lang: str = "ar") -> Dict[str, str]:
    return {
        "order_id": order.id,
        "customer_name": order.customer.full_name,
        "customer_phone": order.customer.phone,
        "total_price": f"{order.total_price:.2f}",
        "order_details": order_summary(order, lang),
    }


class EmailJsNotifier:
    def __init__(
        self,
        service_id: Optional[str],
        template_id: Optional[str],
        public_key: Optional[str],
        endpoint: str,
        session: Optional[requests.Session] = None,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.endpoint = endpoint
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailJsNotifier":
        return cls(
            settings.emailjs_service_id,
            settings.emailjs_template_id,
            settings.emailjs_public_key,
            settings.emailjs_endpoint,
        )

    @property
    def configured(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)

    def _post(self, payload: dict) -> None:
        resp = self.session.post(self.endpoint, json=payload, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()

    async def send_order_confirmation(self, order: Order, lang: str = "ar") -> bool:
        """
        Post the order e-mail. Returns False without any request when the
        notifier is not configured; HTTP and network errors propagate.
        """
        if not self.configured:
            return False
        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": build_template_params(order, lang),
        }
        # requests is blocking; keep it off the UI loop
        await asyncio.to_thread(self._post, payload)
        _logger.info(f"Order e-mail sent for {order.id}")
        return True

    def close(self) -> None:
        self.session.close()
