import re
from datetime import datetime, timezone
from functools import lru_cache, reduce
from typing import Callable, Dict, Iterable, Literal, Mapping, Optional, Tuple

from pyuca import Collator

from .domain import Product

SortMode = Literal["price-asc", "price-desc", "name", "newest"]
SORT_MODES: Tuple[str, ...] = ("price-asc", "price-desc", "name", "newest")
SORT_LABELS: Dict[str, str] = {
    "price-asc": "💰 Ціна: менше → більше",
    "price-desc": "💰 Ціна: більше → менше",
    "name": "🔤 Назва: A-Z",
    "newest": "✨ Новіші спочатку",
}

DEFAULT_PRICE_RANGE: Tuple[int, int] = (0, 100000)
DEFAULT_SORT: SortMode = "price-asc"

CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("laptops", "Ноутбуки"),
    ("phones", "Телефони"),
    ("tv", "TV"),
    ("accessories", "Аксесуари"),
)

# Эвристическая разметка описания: ключ -> шаблон
SPEC_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("RAM", re.compile(r"\b\d+\s*(?:GB|ГБ)\s*RAM\b", re.IGNORECASE)),
    (
        "Storage",
        re.compile(r"\b\d+\s*(?:GB|ГБ|TB|ТБ)(?!\s*RAM)(?:\s*(?:SSD|HDD))?", re.IGNORECASE),
    ),
    ("Display", re.compile(r"\b(?:OLED|IPS|LCD|VA|TN)\b", re.IGNORECASE)),
    ("Resolution", re.compile(r"\b(?:\d+p|4K|8K|FHD|QHD|UHD)\b", re.IGNORECASE)),
    (
        "Processor",
        re.compile(r"\b(?:Intel|AMD|Snapdragon|Apple|M\d+|Core|Ryzen)\b", re.IGNORECASE),
    ),
    ("Battery", re.compile(r"\b\d+\s*mAh\b|\b\d+\s*h\s*battery\b", re.IGNORECASE)),
    ("Refresh Rate", re.compile(r"\b\d+\s*(?:Hz|FPS)\b", re.IGNORECASE)),
)

_EPOCH = 0.0


# ============ Извлечение характеристик ============


def extract_specs(description: Optional[str]) -> Dict[str, Tuple[str, ...]]:
    """
    Ищет в свободном описании характеристики по фиксированным шаблонам.
    Возвращает {ключ: уникальные совпадения в порядке появления}.
    Пустое описание -> {}
    """
    if not description:
        return {}

    specs = {}
    for key, pattern in SPEC_PATTERNS:
        found = tuple(dict.fromkeys(m.group(0).strip() for m in pattern.finditer(description)))
        if found:
            specs[key] = found
    return specs


def available_specs(products: Iterable[Product]) -> Dict[str, Tuple[str, ...]]:
    """Объединение характеристик всех товаров (для виджетов фильтра)"""

    def merge(acc: Dict[str, Tuple[str, ...]], product: Product):
        for key, values in extract_specs(product.description).items():
            acc[key] = tuple(dict.fromkeys(acc.get(key, ()) + values))
        return acc

    return reduce(merge, products, {})


# ============ Предикаты (замыкания) ============


def by_price_range(min_price: float, max_price: float) -> Callable[[Product], bool]:
    """Фильтр по диапазону цен (включительно)"""
    return lambda p: min_price <= p.price <= max_price


def by_specs(selected: Optional[Mapping[str, str]]) -> Callable[[Product], bool]:
    """
    Каждая непустая пара (ключ, значение) должна найтись подстрокой
    (без учёта регистра) хотя бы в одном извлечённом значении.
    """
    active = {k: v.lower() for k, v in (selected or {}).items() if v}
    if not active:
        return lambda p: True

    def matches(product: Product) -> bool:
        specs = extract_specs(product.description)
        return all(
            any(wanted in value.lower() for value in specs.get(key, ()))
            for key, wanted in active.items()
        )

    return matches


def by_category(category: str) -> Callable[[Product], bool]:
    return lambda p: p.category == category


def by_brand(brand: str) -> Callable[[Product], bool]:
    return lambda p: p.brand == brand


# ============ Сортировка ============


def _timestamp(value: Optional[str]) -> float:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


@lru_cache(maxsize=1)
def _collator() -> Collator:
    # таблица DUCET: ґ после г, є после е, і/ї после и
    return Collator()


def _title_key(p: Product):
    return (_collator().sort_key(p.title.casefold()), p.title)


def sort_products(products: Iterable[Product], mode: str) -> Tuple[Product, ...]:
    """Стабильная сортировка; неизвестный режим -> ValueError"""
    if mode == "price-asc":
        return tuple(sorted(products, key=lambda p: p.price))
    if mode == "price-desc":
        return tuple(sorted(products, key=lambda p: p.price, reverse=True))
    if mode == "name":
        return tuple(sorted(products, key=_title_key))
    if mode == "newest":
        return tuple(sorted(products, key=lambda p: _timestamp(p.created_at), reverse=True))
    raise ValueError(f"Unknown sort mode: {mode!r}")


# ============ Композиция ============


def _pipe(*funcs):
    return reduce(lambda f, g: lambda x: g(f(x)), funcs)


def apply_filters(
    products: Iterable[Product],
    price_range: Tuple[float, float],
    selected_specs: Optional[Mapping[str, str]] = None,
    sort_by: str = DEFAULT_SORT,
) -> Tuple[Product, ...]:
    """Цена -> характеристики -> сортировка. Чистая функция."""
    lo, hi = price_range
    pipeline = _pipe(
        lambda items: filter(by_price_range(lo, hi), items),
        lambda items: filter(by_specs(selected_specs), items),
        lambda items: sort_products(items, sort_by),
    )
    return pipeline(tuple(products))


# ============ Вспомогательные для каталога ============


def sub_categories(products: Iterable[Product], category: Optional[str]) -> Tuple[str, ...]:
    """Бренды категории (непустые, в порядке появления)"""
    if not category:
        return ()
    return tuple(
        dict.fromkeys(p.brand for p in products if p.category == category and p.brand)
    )


def search_titles(products: Iterable[Product], text: str) -> Tuple[Product, ...]:
    needle = text.strip().lower()
    if not needle:
        return tuple(products)
    return tuple(p for p in products if needle in p.title.lower())


def clamp_price_range(lo: float, hi: float, max_price: float) -> Tuple[float, float]:
    """Приводит ввод пользователя к [0, max_price] и lo <= hi"""
    lo = min(max(lo, 0), max_price)
    hi = min(max(hi, 0), max_price)
    return (lo, hi) if lo <= hi else (hi, lo)


def has_active_filters(
    category: Optional[str],
    price_range: Tuple[float, float],
    sort_by: str,
    selected_specs: Optional[Mapping[str, str]] = None,
    max_price: float = DEFAULT_PRICE_RANGE[1],
) -> bool:
    return bool(
        category
        or price_range[0] > 0
        or price_range[1] < max_price
        or sort_by != DEFAULT_SORT
        or any((selected_specs or {}).values())
    )
