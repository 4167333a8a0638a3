import re
from datetime import datetime
from typing import Optional, Union

from .domain import FormErrors

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_FORBIDDEN_RE = re.compile(r"[^a-zA-Z0-9@._\-+]")
NAME_FORBIDDEN_RE = re.compile(r"[^а-яА-ЯёЁіІїЇєЄґҐ'ʼ’ -]")
NON_DIGIT_RE = re.compile(r"\D")

PHONE_PREFIX = "+38"
PHONE_EMPTY = PHONE_PREFIX + " "
PHONE_MAX_DIGITS = 12
PHONE_MIN_DIGITS = 10
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
CURRENCY = "грн"
NBSP = "\u00a0"

MSG_EMAIL_REQUIRED = "Поле Email обов'язкове"
MSG_EMAIL_INVALID = "Введіть дійсну поштову адресу"
MSG_PHONE_REQUIRED = "Поле телефон обов'язкове"
MSG_PHONE_INVALID = (
    "Введіть дійсний номер мобільного телефону отримувача (мінімум 10 цифр)"
)
MSG_LAST_NAME_REQUIRED = "Введіть прізвище отримувача"
MSG_FIRST_NAME_REQUIRED = "Введіть ім'я отримувача"
MSG_FILL_ALL = "Заповніть усі поля"
MSG_PASSWORDS_MISMATCH = "Паролі не збігаються"
MSG_PASSWORD_SHORT = "Пароль має бути не менше 6 символів"


# ============ Проверки ============


def validate_email(email: str) -> bool:
    """Только синтаксис local@domain.tld, доставляемость не проверяется"""
    return bool(EMAIL_RE.match(email or ""))


def digits_only(value: str) -> str:
    return NON_DIGIT_RE.sub("", value or "")


def validate_phone(phone: str) -> bool:
    return len(digits_only(phone)) >= PHONE_MIN_DIGITS


def _phone_is_empty(phone: str) -> bool:
    return (phone or "").strip() in ("", PHONE_PREFIX)


# ============ Фильтры ввода ============


def filter_email_input(value: str) -> str:
    return EMAIL_FORBIDDEN_RE.sub("", value or "")


def format_phone_input(value: str, previous: str = PHONE_EMPTY) -> str:
    """
    Маска +38 0XX XXX XX XX.
    Правка, удаляющая префикс +38, отклоняется (возвращается previous).
    """
    if not value:
        return PHONE_EMPTY
    if not value.startswith(PHONE_PREFIX):
        return previous

    limited = digits_only(value)[:PHONE_MAX_DIGITS]
    # Пробелы после 2, 5, 8 и 10 цифры
    groups = [limited[2:5], limited[5:8], limited[8:10], limited[10:12]]
    return " ".join([PHONE_PREFIX] + [g for g in groups if g])


def filter_name_input(value: str) -> str:
    """Кириллица, апострофы, пробел и дефис; не длиннее 50 символов"""
    return NAME_FORBIDDEN_RE.sub("", value or "")[:NAME_MAX_LENGTH]


filter_last_name_input = filter_name_input
filter_first_name_input = filter_name_input


# ============ Форматирование ============


def format_price(price: Union[int, float, str]) -> str:
    """25000 -> '25 000 грн' (неразрывный пробел между разрядами, дробь через запятую)"""
    num = float(price) if isinstance(price, str) else price
    sign = "-" if num < 0 else ""
    integer, _, fraction = f"{abs(num):,.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = integer.replace(",", NBSP) + ("," + fraction if fraction else "")
    return f"{sign}{text} {CURRENCY}"


def format_date(value: Optional[str]) -> str:
    """ISO-метка -> дд.мм.гггг; нераспознанное значение возвращается как есть"""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d.%m.%Y")
    except ValueError:
        return value


def short_order_id(order_id: str) -> str:
    return order_id[-8:].upper()


# ============ Формы ============


def validate_form(email: str, phone: str, last_name: str, first_name: str) -> FormErrors:
    """Ошибки по полям; оформление разрешено только при FormErrors.is_valid"""
    if not (email or "").strip():
        email_error = MSG_EMAIL_REQUIRED
    elif not validate_email(email):
        email_error = MSG_EMAIL_INVALID
    else:
        email_error = ""

    if _phone_is_empty(phone):
        phone_error = MSG_PHONE_REQUIRED
    elif not validate_phone(phone):
        phone_error = MSG_PHONE_INVALID
    else:
        phone_error = ""

    return FormErrors(
        email=email_error,
        phone=phone_error,
        last_name="" if (last_name or "").strip() else MSG_LAST_NAME_REQUIRED,
        first_name="" if (first_name or "").strip() else MSG_FIRST_NAME_REQUIRED,
    )


def validate_login(email: str, password: str) -> Optional[str]:
    return None if email and password else MSG_FILL_ALL


def validate_registration(
    email: str, password: str, confirm: str, full_name: str
) -> Optional[str]:
    if not (email and password and full_name):
        return MSG_FILL_ALL
    if password != confirm:
        return MSG_PASSWORDS_MISMATCH
    if len(password) < PASSWORD_MIN_LENGTH:
        return MSG_PASSWORD_SHORT
    return None
