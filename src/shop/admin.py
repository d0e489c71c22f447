# back-office writes: order status and the shipping rate table
from datetime import datetime, timezone
from typing import Dict, Optional

import aiosqlite

from db import crud
from db.models import ORDER_STATUS_TRANSITIONS, Order, Session
from shop.backend import Backend
from shop.errors import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PersistenceError,
    UnauthorizedError,
)
from shop.identity import is_admin
from shop.shipping import save_rate_table
from utils.logger import get_logger

_logger = get_logger(__name__)


def can_transition(current: str, requested: str) -> bool:
    return requested in ORDER_STATUS_TRANSITIONS.get(current, ())


def _require_admin(backend: Backend, session: Optional[Session], action: str) -> None:
    if not is_admin(session, backend.settings):
        raise UnauthorizedError(action)


async def change_order_status(
    backend: Backend, session: Optional[Session], order_id: str, new_status: str
) -> Order:
    _require_admin(backend, session, "update order status")

    order = await crud.get_order(backend.db, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    if not can_transition(order.status, new_status):
        raise InvalidStatusTransitionError(order.status, new_status)

    try:
        moved = await crud.set_order_status(
            backend.db, order_id, order.status, new_status
        )
    except aiosqlite.Error as e:
        raise PersistenceError(
            f"orders/{order_id}", "update", {"status": new_status}
        ) from e
    if not moved:
        # another admin changed it between our read and write
        current = await crud.get_order(backend.db, order_id)
        raise InvalidStatusTransitionError(
            current.status if current else "missing", new_status
        )

    _logger.info(f"Order {order_id}: {order.status} -> {new_status}")
    return await crud.get_order(backend.db, order_id)


async def update_shipping_rates(
    backend: Backend,
    session: Optional[Session],
    rates: Dict[str, float],
    when: Optional[datetime] = None,
) -> None:
    _require_admin(backend, session, "update shipping rates")
    try:
        await save_rate_table(backend.db, rates, when or datetime.now(timezone.utc))
    except aiosqlite.Error as e:
        raise PersistenceError("shipping_rates", "write", dict(rates)) from e
