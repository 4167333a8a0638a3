from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

SpecValue = Union[str, int, float, bool]


@dataclass(frozen=True)
class Product:
    id: str
    title: str
    price: float  # гривні
    category: str
    brand: Optional[str] = None
    sub_category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    specs: Optional[Dict[str, SpecValue]] = field(default=None, hash=False, compare=False)
    created_at: Optional[str] = None


@dataclass(frozen=True)
class CartLine:
    product: Product
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = ()


@dataclass(frozen=True)
class Recipient:
    last_name: str = ""
    first_name: str = ""
    patronymic: str = ""
    phone: str = "+38 "


@dataclass(frozen=True)
class OrderItem:
    id: str
    title: str
    price: float
    quantity: int


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    email: str
    recipient: Recipient
    phone: str
    items: Tuple[OrderItem, ...]
    total_price: float
    payment_category: str
    payment_method: str
    created_at: str

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class WishlistEntry:
    user_id: str
    product_id: str


@dataclass(frozen=True)
class Profile:
    id: str
    email: str
    full_name: str = ""
    phone: str = ""
    created_at: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user_id: str
    email: str
    refresh_token: str = ""


@dataclass(frozen=True)
class FormErrors:
    email: str = ""
    phone: str = ""
    last_name: str = ""
    first_name: str = ""

    @property
    def is_valid(self) -> bool:
        return not any((self.email, self.phone, self.last_name, self.first_name))

    def messages(self) -> Tuple[str, ...]:
        return tuple(
            m for m in (self.email, self.phone, self.last_name, self.first_name) if m
        )
