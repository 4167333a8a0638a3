# storefront/ftypes.py
# Maybe / Either для ожидаемых ошибок (валидация, ответы бэкенда).

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Optional-значение: Maybe.some(value) или Maybe.nothing().
    Используется при разборе строк бэкенда, где отсутствие не ошибка.
    """

    value: Optional[T]

    @staticmethod
    def some(value: T) -> "Maybe[T]":
        return Maybe(value)

    @staticmethod
    def nothing() -> "Maybe[None]":
        return Maybe(None)

    @staticmethod
    def of(value: Optional[T]) -> "Maybe[T]":
        return Maybe(value)

    def is_some(self) -> bool:
        return self.value is not None

    def map(self, fn: Callable[[T], U]) -> "Maybe[U]":
        return Maybe.some(fn(self.value)) if self.is_some() else Maybe.nothing()

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default

    def __repr__(self) -> str:
        return f"Some({self.value!r})" if self.is_some() else "Nothing"


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Left: ошибка (сообщение для пользователя или FormErrors),
    Right: успешный результат операции.
    """

    is_left: bool
    value: Union[L, R]

    @staticmethod
    def left(value: L) -> "Either[L, R]":
        return Either(True, value)

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def __repr__(self) -> str:
        return f"Left({self.value!r})" if self.is_left else f"Right({self.value!r})"
