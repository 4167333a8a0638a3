"""
Преобразование строк бэкенда в доменные записи (один раз, на границе).
Некорректные поля получают значения по умолчанию, строки без id отбрасываются.
"""

import logging
from typing import Any, Iterable, Optional, Tuple

from .domain import Order, OrderItem, Product, Profile, Recipient
from .ftypes import Maybe

logger = logging.getLogger(__name__)

Row = dict


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _number(value: Any, default: float = 0.0) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    return num if num == num else default  # NaN


def _quantity(value: Any) -> int:
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return 1


def product_from_row(row: Row) -> Maybe[Product]:
    if not isinstance(row, dict) or not row.get("id"):
        logger.warning("Skipping product row without id: %r", row)
        return Maybe.nothing()
    specs = row.get("specs")
    return Maybe.some(
        Product(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            price=max(_number(row.get("price")), 0.0),
            category=str(row.get("category") or ""),
            brand=_str_or_none(row.get("brand")),
            sub_category=_str_or_none(row.get("sub_category")),
            description=_str_or_none(row.get("description")),
            image_url=_str_or_none(row.get("image_url")),
            specs=dict(specs) if isinstance(specs, dict) else None,
            created_at=_str_or_none(row.get("created_at")),
        )
    )


def products_from_rows(rows: Iterable[Row]) -> Tuple[Product, ...]:
    converted = (product_from_row(r) for r in rows)
    return tuple(m.value for m in converted if m.is_some())


def _item_from_row(row: Any) -> Maybe[OrderItem]:
    if not isinstance(row, dict) or not row.get("id"):
        return Maybe.nothing()
    return Maybe.some(
        OrderItem(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            price=_number(row.get("price")),
            quantity=_quantity(row.get("quantity")),
        )
    )


def order_from_row(row: Row) -> Maybe[Order]:
    if not isinstance(row, dict) or not row.get("id"):
        logger.warning("Skipping order row without id")
        return Maybe.nothing()

    recipient = row.get("recipient") if isinstance(row.get("recipient"), dict) else {}
    phone = str(row.get("phone") or "")
    raw_items = row.get("items") if isinstance(row.get("items"), list) else []
    items = tuple(m.value for m in map(_item_from_row, raw_items) if m.is_some())

    return Maybe.some(
        Order(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            email=str(row.get("email") or ""),
            recipient=Recipient(
                last_name=str(recipient.get("lastName") or ""),
                first_name=str(recipient.get("firstName") or ""),
                patronymic=str(recipient.get("patronymic") or ""),
                phone=phone,
            ),
            phone=phone,
            items=items,
            total_price=_number(row.get("total_price")),
            payment_category=str(row.get("payment_category") or ""),
            payment_method=str(row.get("payment_method") or ""),
            created_at=str(row.get("created_at") or ""),
        )
    )


def orders_from_rows(rows: Iterable[Row]) -> Tuple[Order, ...]:
    return tuple(m.value for m in map(order_from_row, rows) if m.is_some())


def order_to_row(order: Order) -> Row:
    """Payload для вставки в order_history (id присваивает бэкенд)"""
    return {
        "user_id": order.user_id,
        "email": order.email,
        "recipient": {
            "firstName": order.recipient.first_name,
            "lastName": order.recipient.last_name,
            "patronymic": order.recipient.patronymic or "",
        },
        "phone": order.phone,
        "items": [
            {"id": i.id, "title": i.title, "price": i.price, "quantity": i.quantity}
            for i in order.items
        ],
        "total_price": order.total_price,
        "payment_category": order.payment_category,
        "payment_method": order.payment_method,
        "created_at": order.created_at,
    }


def profile_from_row(row: Optional[Row], user_id: str, email: str) -> Profile:
    """Профиля может не быть (ошибка вставки при регистрации), тогда пустой"""
    row = row if isinstance(row, dict) else {}
    return Profile(
        id=user_id,
        email=email or str(row.get("email") or ""),
        full_name=str(row.get("full_name") or ""),
        phone=str(row.get("phone") or ""),
        created_at=_str_or_none(row.get("created_at")),
    )


def split_full_name(full_name: str) -> Tuple[str, str]:
    """'Ім'я Прізвище' -> (first_name, last_name)"""
    first, _, rest = (full_name or "").strip().partition(" ")
    return first, rest.strip()
