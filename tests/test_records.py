import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.domain import Order, OrderItem, Recipient
from storefront.records import (
    order_from_row,
    order_to_row,
    product_from_row,
    products_from_rows,
    profile_from_row,
    split_full_name,
)


def test_product_row_defaults_malformed_fields():
    product = product_from_row(
        {"id": 7, "title": None, "price": "abc", "specs": "bad", "brand": ""}
    ).get_or_else(None)

    assert product.id == "7"
    assert product.title == ""
    assert product.price == 0.0
    assert product.specs is None
    assert product.brand is None


def test_product_negative_price_clamped():
    assert product_from_row({"id": "p", "price": -10}).get_or_else(None).price == 0.0


def test_rows_without_id_are_skipped():
    products = products_from_rows([{"id": "p1"}, {}, "garbage", {"id": ""}])
    assert [p.id for p in products] == ["p1"]


def test_order_row_conversion():
    order = order_from_row(
        {
            "id": "o1",
            "user_id": "u1",
            "email": "user@example.com",
            "recipient": {"firstName": "Тарас", "lastName": "Шевченко"},
            "phone": "+38 050 123 45 67",
            "items": [
                {"id": "p1", "title": "TV", "price": 100, "quantity": 2},
                {"title": "без id"},
            ],
            "total_price": "200",
            "payment_category": "pay_now",
            "payment_method": "google_pay",
            "created_at": "2025-06-01T10:00:00Z",
        }
    ).get_or_else(None)

    assert order.recipient.first_name == "Тарас"
    assert order.recipient.patronymic == ""
    assert order.items == (OrderItem("p1", "TV", 100.0, 2),)
    assert order.total_price == 200.0
    assert order.items_count == 2


def test_order_to_row_payload_shape():
    order = Order(
        id="",
        user_id="u1",
        email="user@example.com",
        recipient=Recipient("Шевченко", "Тарас", "", "+38 050 123 45 67"),
        phone="+38 050 123 45 67",
        items=(OrderItem("p1", "TV", 100.0, 2),),
        total_price=200.0,
        payment_category="on_delivery",
        payment_method="card",
        created_at="2025-06-01T10:00:00+00:00",
    )

    row = order_to_row(order)

    assert "id" not in row
    assert row["recipient"] == {"firstName": "Тарас", "lastName": "Шевченко", "patronymic": ""}
    assert row["items"] == [{"id": "p1", "title": "TV", "price": 100.0, "quantity": 2}]
    assert row["total_price"] == 200.0


def test_split_full_name():
    assert split_full_name("Тарас Григорович Шевченко") == ("Тарас", "Григорович Шевченко")
    assert split_full_name("") == ("", "")


def test_profile_from_row_and_missing_profile():
    """Профиля может не быть: берём id и email из сессии"""
    profile = profile_from_row({"full_name": "Тарас Шевченко", "phone": None}, "u1", "t@example.com")
    assert profile.full_name == "Тарас Шевченко"
    assert profile.phone == ""
    assert profile.id == "u1"

    empty = profile_from_row(None, "u1", "t@example.com")
    assert empty.email == "t@example.com"
    assert empty.full_name == ""
