"""Post-commit work that must never affect whether an order was placed.

``BestEffort.fire`` is the only way side effects are started: the wrapped
coroutine runs as its own task, any exception it raises is logged and
dropped, and nothing waits for it unless ``drain`` is called.
"""

import asyncio
from typing import Awaitable, Callable, Set

from db import crud
from db.database import Database
from db.models import Order
from shop.notify import EmailJsNotifier
from utils.logger import get_logger

_logger = get_logger(__name__)


class BestEffort:
    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def fire(self, label: str, action: Callable[[], Awaitable[object]]) -> asyncio.Task:
        """Schedule action() on the running loop; never raises."""

        async def runner() -> None:
            try:
                await action()
            except asyncio.CancelledError:
                _logger.warning(f"{label}: cancelled")
            except Exception as e:
                _logger.warning(f"{label}: failed and was dropped ({e!r})")

        task = asyncio.get_running_loop().create_task(runner(), name=label)
        # the loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every outstanding side effect (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


async def _decrement_stock(db: Database, product_id: str, quantity: int) -> None:
    if not await crud.increment_stock(db, product_id, -quantity):
        raise LookupError(f"unknown product {product_id}")


def dispatch_order_side_effects(
    runner: BestEffort,
    db: Database,
    notifier: EmailJsNotifier,
    order: Order,
    lang: str = "ar",
) -> None:
    """
    Fire one stock decrement per line plus the order e-mail. The decrements
    race each other and are not joined; stock can drift if any of them fail.
    """
    for item in order.items:
        runner.fire(
            f"order {order.id}: stock -{item.quantity} {item.product_id}",
            lambda pid=item.product_id, qty=item.quantity: _decrement_stock(db, pid, qty),
        )

    if notifier.configured:
        runner.fire(
            f"order {order.id}: email notification",
            lambda: notifier.send_order_confirmation(order, lang),
        )
    else:
        _logger.debug(f"order {order.id}: email not configured, skipping")
