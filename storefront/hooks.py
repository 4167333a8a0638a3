import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from .backend import BackendClient, BackendError, eq
from .domain import AuthSession, Order, Product, Profile
from .records import orders_from_rows, products_from_rows, profile_from_row

logger = logging.getLogger(__name__)

T = TypeVar("T")

MSG_PRODUCTS_FAILED = "Не вдалося завантажити товари"
MSG_ORDERS_FAILED = "Не вдалося завантажити історію замовлень"
MSG_WISHLIST_FAILED = "Не вдалося завантажити список бажань"
MSG_PROFILE_FAILED = "Не вдалося завантажити профіль"


@dataclass(frozen=True)
class FetchState(Generic[T]):
    """
    (data, loading, error) одного запроса.
    До завершения: data=(), loading=True. После ошибки: data=(), error=сообщение.
    """

    data: Tuple[T, ...] = ()
    loading: bool = True
    error: Optional[str] = None

    @staticmethod
    def ok(data: Tuple[T, ...]) -> "FetchState[T]":
        return FetchState(data=tuple(data), loading=False, error=None)

    @staticmethod
    def failed(message: str) -> "FetchState[T]":
        return FetchState(data=(), loading=False, error=message)


async def _one_shot(
    name: str,
    query: Callable[[], Awaitable[Any]],
    convert: Callable[[Any], Tuple[T, ...]],
    error_message: str,
) -> FetchState[T]:
    """Ровно один запрос: без повторов, пагинации и кэша"""
    try:
        rows = await query()
    except BackendError:
        logger.exception("Fetch %s failed", name, extra={"table": name})
        return FetchState.failed(error_message)
    return FetchState.ok(convert(rows))


# ============ Хуки ============


async def fetch_products(client: BackendClient) -> FetchState[Product]:
    return await _one_shot(
        "products",
        lambda: client.select("products"),
        products_from_rows,
        MSG_PRODUCTS_FAILED,
    )


async def fetch_wishlist(client: BackendClient, session: AuthSession) -> FetchState[str]:
    return await _one_shot(
        "wishlist",
        lambda: client.select(
            "wishlist",
            {"user_id": eq(session.user_id)},
            columns="product_id",
            access_token=session.access_token,
        ),
        lambda rows: tuple(
            dict.fromkeys(str(r["product_id"]) for r in rows if r.get("product_id"))
        ),
        MSG_WISHLIST_FAILED,
    )


async def fetch_orders(client: BackendClient, session: AuthSession) -> FetchState[Order]:
    return await _one_shot(
        "order_history",
        lambda: client.select(
            "order_history",
            {"user_id": eq(session.user_id)},
            order="created_at.desc",
            access_token=session.access_token,
        ),
        orders_from_rows,
        MSG_ORDERS_FAILED,
    )


async def fetch_profile(client: BackendClient, session: AuthSession) -> FetchState[Profile]:
    return await _one_shot(
        "profiles",
        lambda: client.select_one(
            "profiles", {"id": eq(session.user_id)}, access_token=session.access_token
        ),
        lambda row: (profile_from_row(row, session.user_id, session.email),),
        MSG_PROFILE_FAILED,
    )


async def fetch_all_async(
    fetches: Dict[str, Awaitable[FetchState]],
) -> Dict[str, FetchState]:
    """Параллельно выполняет несколько одноразовых запросов (экран профиля)"""
    names = list(fetches)
    results = await asyncio.gather(*(fetches[n] for n in names))
    return dict(zip(names, results))


async def load_account(client: BackendClient, session: AuthSession) -> Dict[str, FetchState]:
    return await fetch_all_async(
        {
            "profile": fetch_profile(client, session),
            "orders": fetch_orders(client, session),
            "wishlist": fetch_wishlist(client, session),
        }
    )
