# provide dataclass models

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Literal, Optional, Tuple

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]

# forward-only lifecycle; delivered and cancelled are terminal
ORDER_STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": (),
    "cancelled": (),
}

PAYMENT_COD = "Cash on Delivery"


@dataclass(frozen=True)
class ColorOption:
    id: str
    name: str
    name_en: str = ""
    hex: str = ""


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    name_en: str
    slug: str
    image: str = ""


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    name_en: str
    price: float
    category: str  # category slug
    description: str = ""
    image: str = ""
    stock: int = 0
    discount_type: Optional[Literal["permanent", "timed"]] = None
    discount_price: Optional[float] = None
    discount_end: Optional[datetime] = None
    discount_percentage: Optional[float] = None
    colors: Tuple[ColorOption, ...] = ()


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    name_en: str
    price: float  # effective price when added, discount already applied
    image: str
    quantity: int
    color: Optional[ColorOption] = None

    @property
    def color_id(self) -> Optional[str]:
        return self.color.id if self.color else None


@dataclass(frozen=True)
class CustomerInfo:
    full_name: str
    phone: str  # E.164, e.g. +15125550100
    region: str  # US state name
    address: str


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    name: str
    name_en: str
    price: float
    quantity: int
    color_label: str = ""
    image: str = ""


@dataclass(frozen=True)
class LegalConsent:
    agreed: bool
    policy_version: str
    agreed_at: datetime


@dataclass(frozen=True)
class Order:
    id: str
    customer: CustomerInfo
    items: Tuple[OrderItem, ...]
    total_price: float
    shipping_fee: float
    status: OrderStatus
    created_at: datetime
    user_id: str
    consent: LegalConsent
    payment_method: str = PAYMENT_COD

    @property
    def subtotal(self) -> float:
        return round(self.total_price - self.shipping_fee, 2)


@dataclass(frozen=True)
class UserProfile:
    uid: str
    full_name: str = ""
    phone: str = ""
    address: str = ""
    email: str = ""


@dataclass(frozen=True)
class PhoneChallenge:
    id: str
    phone: str
    code: str
    created_at: datetime
    expires_at: datetime
    status: Literal["pending", "used", "invalidated"] = "pending"
    attempts: int = 0  # wrong codes entered so far


@dataclass
class Session:
    """Acting identity of the current terminal session."""

    uid: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.uid is not None
