from functools import reduce
from typing import Tuple

from .domain import Cart, CartLine, OrderItem, Product
from .ftypes import Maybe


# ============ Переходы корзины (чистые функции) ============


def add_to_cart(cart: Cart, product: Product) -> Cart:
    """Новая строка с qty=1 в конец или +1 к существующей (порядок сохраняется)"""
    if find_line(cart, product.id).is_some():
        return Cart(
            lines=tuple(
                CartLine(line.product, line.quantity + 1)
                if line.product.id == product.id
                else line
                for line in cart.lines
            )
        )
    return Cart(lines=cart.lines + (CartLine(product, 1),))


def remove_from_cart(cart: Cart, product_id: str) -> Cart:
    return Cart(lines=tuple(filter(lambda l: l.product.id != product_id, cart.lines)))


def set_quantity(cart: Cart, product_id: str, quantity: int) -> Cart:
    """quantity <= 0 удаляет строку; отсутствующий product_id ничего не меняет"""
    if quantity <= 0:
        return remove_from_cart(cart, product_id)
    return Cart(
        lines=tuple(
            CartLine(line.product, quantity) if line.product.id == product_id else line
            for line in cart.lines
        )
    )


def clear_cart(cart: Cart) -> Cart:
    return Cart()


def find_line(cart: Cart, product_id: str) -> Maybe[CartLine]:
    found = next((l for l in cart.lines if l.product.id == product_id), None)
    return Maybe.of(found)


# ============ Производные значения ============


def total_items(cart: Cart) -> int:
    return reduce(lambda acc, line: acc + line.quantity, cart.lines, 0)


def total_price(cart: Cart) -> float:
    return reduce(lambda acc, line: acc + line.subtotal, cart.lines, 0)


def order_items(cart: Cart) -> Tuple[OrderItem, ...]:
    """Снимок строк корзины для заказа (не зависит от живого каталога)"""
    return tuple(
        OrderItem(
            id=line.product.id,
            title=line.product.title,
            price=line.product.price,
            quantity=line.quantity,
        )
        for line in cart.lines
    )
