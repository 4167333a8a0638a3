import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from storefront.domain import Cart, Product
from storefront.cart import (
    add_to_cart,
    clear_cart,
    find_line,
    order_items,
    remove_from_cart,
    set_quantity,
    total_items,
    total_price,
)


@pytest.fixture
def product_a():
    return Product(id="a", title="A", price=100, category="tv")


@pytest.fixture
def product_b():
    return Product(id="b", title="B", price=250, category="tv")


def test_add_to_empty_cart(product_a):
    """Первое добавление даёт одну строку с qty=1"""
    cart = add_to_cart(Cart(), product_a)
    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 1


def test_add_twice_increments(product_a):
    cart = add_to_cart(add_to_cart(Cart(), product_a), product_a)
    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2


def test_add_is_immutable(product_a):
    empty = Cart()
    updated = add_to_cart(empty, product_a)
    assert empty.lines == ()
    assert updated != empty


def test_new_lines_append_and_order_preserved(product_a, product_b):
    cart = add_to_cart(add_to_cart(Cart(), product_a), product_b)
    cart = add_to_cart(cart, product_a)
    assert [l.product.id for l in cart.lines] == ["a", "b"]
    assert [l.quantity for l in cart.lines] == [2, 1]


def test_remove_from_cart(product_a, product_b):
    cart = add_to_cart(add_to_cart(Cart(), product_a), product_b)
    cart = remove_from_cart(cart, "a")
    assert [l.product.id for l in cart.lines] == ["b"]
    assert remove_from_cart(cart, "missing") == cart


def test_set_quantity_zero_removes(product_a):
    cart = add_to_cart(Cart(), product_a)
    assert set_quantity(cart, "a", 0).lines == ()
    assert set_quantity(cart, "a", -3).lines == ()


def test_set_quantity_keeps_position(product_a, product_b):
    cart = add_to_cart(add_to_cart(Cart(), product_a), product_b)
    cart = set_quantity(cart, "a", 5)
    assert [(l.product.id, l.quantity) for l in cart.lines] == [("a", 5), ("b", 1)]


def test_set_quantity_absent_is_noop(product_a):
    cart = add_to_cart(Cart(), product_a)
    assert set_quantity(cart, "zzz", 4) == cart


def test_totals_example(product_a, product_b):
    """A(100) x2 + B(250) x1 -> 3 шт, 450"""
    cart = add_to_cart(add_to_cart(add_to_cart(Cart(), product_a), product_a), product_b)
    assert total_items(cart) == 3
    assert total_price(cart) == 450


def test_totals_match_lines(product_a, product_b):
    cart = set_quantity(add_to_cart(add_to_cart(Cart(), product_a), product_b), "b", 4)
    assert total_items(cart) == sum(l.quantity for l in cart.lines)
    assert total_price(cart) == sum(l.product.price * l.quantity for l in cart.lines)


def test_clear_cart(product_a):
    cart = add_to_cart(Cart(), product_a)
    assert clear_cart(cart) == Cart()
    assert total_items(clear_cart(cart)) == 0


def test_find_line(product_a):
    cart = add_to_cart(Cart(), product_a)
    assert find_line(cart, "a").is_some()
    assert not find_line(cart, "b").is_some()


def test_order_items_snapshot(product_a):
    cart = set_quantity(add_to_cart(Cart(), product_a), "a", 3)
    items = order_items(cart)
    assert len(items) == 1
    assert (items[0].id, items[0].title, items[0].price, items[0].quantity) == ("a", "A", 100, 3)
