import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from storefront.validation import (
    MSG_EMAIL_INVALID,
    MSG_EMAIL_REQUIRED,
    MSG_FILL_ALL,
    MSG_PASSWORD_SHORT,
    MSG_PASSWORDS_MISMATCH,
    MSG_PHONE_INVALID,
    MSG_PHONE_REQUIRED,
    filter_email_input,
    filter_name_input,
    format_date,
    format_phone_input,
    format_price,
    short_order_id,
    validate_email,
    validate_form,
    validate_login,
    validate_phone,
    validate_registration,
)


# ============ Email ============


def test_email_filter_and_validation():
    filtered = filter_email_input("us er@exa!mple.com")
    assert filtered == "user@example.com"
    assert validate_email(filtered)


@pytest.mark.parametrize("value", ["user", "user@", "user@host", "a b@c.d", "@c.d"])
def test_invalid_emails(value):
    assert not validate_email(value)


def test_email_filter_keeps_allowed_symbols():
    assert filter_email_input("a.b_c-d+e@x.io") == "a.b_c-d+e@x.io"


# ============ Телефон ============


def test_phone_formatter_full_number():
    formatted = format_phone_input("+380501234567")
    assert formatted == "+38 050 123 45 67"
    assert validate_phone(formatted)


def test_phone_formatter_partial_input():
    assert format_phone_input("+38050") == "+38 050"
    assert format_phone_input("+380501") == "+38 050 1"
    assert format_phone_input("+38 050 123 4") == "+38 050 123 4"


def test_phone_formatter_truncates_to_12_digits():
    assert format_phone_input("+38050123456789") == "+38 050 123 45 67"


def test_phone_formatter_rejects_prefix_removal():
    assert format_phone_input("38 050", previous="+38 050") == "+38 050"
    assert format_phone_input("") == "+38 "


def test_phone_formatter_strips_non_digits():
    assert format_phone_input("+38(050)abc123") == "+38 050 123"


def test_validate_phone_digit_count():
    assert validate_phone("050 123 45 67")
    assert not validate_phone("+38 050 12")


# ============ Имена ============


def test_name_filter_keeps_cyrillic():
    assert filter_name_input("Шевченко-Їжак") == "Шевченко-Їжак"
    assert filter_name_input("Ivan Петро123") == " Петро"
    assert filter_name_input("Д'Артаньян") == "Д'Артаньян"


def test_name_filter_truncates():
    assert len(filter_name_input("я" * 80)) == 50


# ============ Цена / дата ============


def test_format_price_grouping():
    assert format_price(25000) == "25\u00a0000 грн"
    assert format_price("1234567") == "1\u00a0234\u00a0567 грн"
    assert format_price(999.5) == "999,5 грн"
    assert format_price(0) == "0 грн"


def test_format_price_rejects_non_numeric_string():
    with pytest.raises(ValueError):
        format_price("abc")


def test_format_date_and_short_id():
    assert format_date("2025-03-01T10:00:00Z") == "01.03.2025"
    assert format_date("not a date") == "not a date"
    assert short_order_id("123e4567-e89b-12d3-a456-426614174abc") == "14174ABC"


# ============ Формы ============


def test_validate_form_all_empty():
    """Четыре пустых поля дают четыре ошибки 'обязательно'"""
    errors = validate_form("", "", "", "")
    assert not errors.is_valid
    assert len(errors.messages()) == 4
    assert errors.email == MSG_EMAIL_REQUIRED
    assert errors.phone == MSG_PHONE_REQUIRED


def test_validate_form_bare_phone_prefix_is_empty():
    errors = validate_form("", "+38 ", "", "")
    assert errors.phone == MSG_PHONE_REQUIRED


def test_validate_form_all_valid():
    errors = validate_form("user@example.com", "+38 050 123 45 67", "Шевченко", "Тарас")
    assert errors.is_valid
    assert errors.messages() == ()


def test_validate_form_format_errors():
    errors = validate_form("user@", "+38 050 12", "Шевченко", "Тарас")
    assert errors.email == MSG_EMAIL_INVALID
    assert errors.phone == MSG_PHONE_INVALID
    assert not errors.is_valid


def test_validate_login_and_registration():
    assert validate_login("", "x") == MSG_FILL_ALL
    assert validate_login("a@b.c", "x") is None
    assert validate_registration("a@b.c", "secret", "secret", "") == MSG_FILL_ALL
    assert validate_registration("a@b.c", "secret", "other", "Ім'я") == MSG_PASSWORDS_MISMATCH
    assert validate_registration("a@b.c", "abc", "abc", "Ім'я") == MSG_PASSWORD_SHORT
    assert validate_registration("a@b.c", "secret", "secret", "Ім'я") is None
