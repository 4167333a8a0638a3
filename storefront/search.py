import time
from typing import Callable, Generic, Iterable, Iterator, Optional, TypeVar

from .domain import Product

T = TypeVar("T")


## лениво отдаёт товары, в названии которых есть text (без учёта регистра)
## останавливается после limit совпадений
def iter_suggestions(products: Iterable[Product], text: str, limit: int = 5) -> Iterator[Product]:
    needle = (text or "").strip().lower()
    if not needle or limit <= 0:
        return
    found = 0
    for product in products:
        if needle in product.title.lower():
            yield product
            found += 1
            if found >= limit:
                return


class Debouncer(Generic[T]):
    """
    Отложенное применение значения для синхронного UI (опрос по таймеру).
    Каждый schedule() отменяет ожидающее значение; poll() отдаёт значение
    только после паузы delay и только последнее.
    """

    def __init__(self, delay: float = 0.3, clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self._clock = clock
        self._value: Optional[T] = None
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def schedule(self, value: T) -> None:
        self._value = value
        self._deadline = self._clock() + self.delay

    def cancel(self) -> None:
        self._value = None
        self._deadline = None

    def poll(self) -> Optional[T]:
        if self._deadline is None or self._clock() < self._deadline:
            return None
        value = self._value
        self.cancel()
        return value
