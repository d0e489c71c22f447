"""Order placement.

``place_order`` is the whole checkout in one sequence::

    validate (no I/O) -> read rates -> price -> write order -> fire side effects
                                                   -> clear cart -> return order

Only the order write decides success. Anything after it is best effort and
anything before it leaves the store untouched.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import aiosqlite

from db import crud
from db.models import CartItem, CustomerInfo, Order, OrderItem, Session
from shop.backend import Backend
from shop.cart import Cart
from shop.consent import capture_consent
from shop.errors import OrderValidationError, PersistenceError
from shop.identity import resolve_user_id
from shop.phone_gate import PhoneGate
from shop.pricing import PriceBreakdown, compute_totals
from shop.shipping import load_rate_table
from shop.side_effects import dispatch_order_side_effects
from utils.i18n import pick
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutDraft:
    full_name: str
    phone: str
    region: str
    address: str
    terms_agreed: bool


def validate_draft(draft: CheckoutDraft, gate: PhoneGate, cart: Cart) -> None:
    """Raise OrderValidationError for the first unmet precondition."""
    required = (
        ("full_name", draft.full_name),
        ("phone", draft.phone),
        ("region", draft.region),
        ("address", draft.address),
    )
    for field, value in required:
        if not (value or "").strip():
            raise OrderValidationError(field)
    if not draft.terms_agreed:
        raise OrderValidationError("terms")
    if not gate.is_verified:
        raise OrderValidationError("phone_unverified")
    if cart.is_empty():
        raise OrderValidationError("cart")


def _color_label(item: CartItem, lang: str) -> str:
    if item.color is None:
        return ""
    return pick(item.color.name, item.color.name_en, lang)


def new_order_id() -> str:
    return uuid.uuid4().hex[:20]


def build_order(
    draft: CheckoutDraft,
    cart: Cart,
    totals: PriceBreakdown,
    user_id: str,
    policy_version: str,
    lang: str = "ar",
    now: Optional[datetime] = None,
) -> Order:
    now = now or datetime.now(timezone.utc)
    items = tuple(
        OrderItem(
            product_id=item.product_id,
            name=item.name,
            name_en=item.name_en or "",
            price=item.price,
            quantity=item.quantity,
            color_label=_color_label(item, lang),
            image=item.image,
        )
        for item in cart.items
    )
    return Order(
        id=new_order_id(),
        customer=CustomerInfo(
            full_name=draft.full_name.strip(),
            phone=draft.phone.strip(),
            region=draft.region.strip(),
            address=draft.address.strip(),
        ),
        items=items,
        total_price=totals.grand_total,
        shipping_fee=totals.shipping_fee,
        status="pending",
        created_at=now,
        user_id=user_id,
        consent=capture_consent(draft.terms_agreed, policy_version, now),
    )


def _request_data(order: Order) -> Dict[str, object]:
    return {
        "user_id": order.user_id,
        "region": order.customer.region,
        "items": len(order.items),
        "total_price": order.total_price,
    }


async def write_order(backend: Backend, order: Order) -> None:
    """Single write of the order; storage failures become PersistenceError."""
    try:
        await crud.create_order(backend.db, order)
    except (aiosqlite.Error, OSError) as e:
        raise PersistenceError("orders", "create", _request_data(order)) from e


async def place_order(
    backend: Backend,
    session: Optional[Session],
    cart: Cart,
    draft: CheckoutDraft,
    gate: PhoneGate,
    lang: str = "ar",
) -> Order:
    validate_draft(draft, gate, cart)

    rates = await load_rate_table(backend.db)
    totals = compute_totals(cart.items, draft.region.strip(), rates)
    order = build_order(
        draft,
        cart,
        totals,
        resolve_user_id(session),
        backend.settings.policy_version,
        lang,
    )

    await write_order(backend, order)
    _logger.info(
        f"Order {order.id} placed by {order.user_id}: "
        f"{len(order.items)} lines, total {order.total_price:.2f}"
    )

    dispatch_order_side_effects(
        backend.side_effects, backend.db, backend.notifier, order, lang
    )
    try:
        cart.clear()
    except OSError as e:
        # the order is stored; the in-memory cart is already empty
        _logger.warning(f"Order {order.id} placed but the saved cart was not cleared: {e}")
    return order
