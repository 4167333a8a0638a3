import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import FrozenSet, Optional, Union

from .backend import BackendClient, BackendError, eq, in_
from .cart import order_items, total_price
from .config import Settings
from .domain import AuthSession, FormErrors, Order
from .ftypes import Either, Maybe
from .records import order_to_row
from .state import ShopState
from .validation import validate_form, validate_login, validate_registration

logger = logging.getLogger(__name__)

PAYMENT_CATEGORIES = ("on_delivery", "pay_now", "credit")
PAYMENT_METHODS = ("card", "google_pay", "apple_pay")
PAYMENT_LABELS = {
    "on_delivery": "Оплата під час отримання товару",
    "pay_now": "Оплатити зараз",
    "credit": "Кредит та оплата частинами",
    "card": "Картою",
    "google_pay": "Google Pay",
    "apple_pay": "Apple Pay",
}

AUTH_REQUIRED = "auth_required"
MSG_AUTH_REQUIRED = "Будь ласка, авторизуйтеся перед оформленням замовлення"
MSG_LOGIN_FAILED = "Помилка входу. Спробуйте пізніше."
MSG_REGISTER_FAILED = "Помилка реєстрації. Спробуйте пізніше."
MSG_REGISTER_OK = "Реєстрація успішна! Ви можете увійти."
MSG_ORDER_FAILED = "Помилка при оформленні замовлення. Спробуйте ще раз."
MSG_ORDER_OK = "Замовлення успішно оформлено!"
MSG_EMPTY_CART = "Кошик порожній"


def _user_message(error: BackendError, fallback: str) -> str:
    # без статуса это сетевая ошибка, текст httpx пользователю не показываем
    return error.message if error.status_code else fallback


class AuthService:
    """Вход, демо-вход, регистрация и выход"""

    def __init__(self, client: BackendClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def login(self, email: str, password: str) -> Either[str, AuthSession]:
        error = validate_login(email, password)
        if error:
            return Either.left(error)
        try:
            session = await self.client.sign_in(email, password)
        except BackendError as e:
            logger.info("Sign-in rejected: %s", e.message)
            return Either.left(_user_message(e, MSG_LOGIN_FAILED))
        logger.info("User signed in", extra={"user_id": session.user_id})
        return Either.right(session)

    async def demo_login(self) -> Either[str, AuthSession]:
        return await self.login(self.settings.DEMO_EMAIL, self.settings.DEMO_PASSWORD)

    async def register(
        self, email: str, password: str, confirm: str, full_name: str
    ) -> Either[str, str]:
        """
        Регистрация + вставка профиля.
        Ошибка вставки профиля только логируется: пользователь уже создан.
        Right: сообщение об успехе.
        """
        error = validate_registration(email, password, confirm, full_name)
        if error:
            return Either.left(error)

        try:
            user = await self.client.sign_up(email, password)
        except BackendError as e:
            logger.info("Sign-up rejected: %s", e.message)
            return Either.left(_user_message(e, MSG_REGISTER_FAILED))

        user_id = str(user["id"])
        try:
            await self.client.insert(
                "profiles",
                [{"id": user_id, "email": email, "full_name": full_name}],
                returning=False,
            )
        except BackendError:
            logger.exception("Profile insert failed", extra={"user_id": user_id})

        return Either.right(MSG_REGISTER_OK)

    async def logout(self, session: AuthSession) -> None:
        try:
            await self.client.sign_out(session)
        except BackendError:
            logger.exception("Sign-out failed", extra={"user_id": session.user_id})


class WishlistService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def toggle(
        self, session: Optional[AuthSession], wishlist: FrozenSet[str], product_id: str
    ) -> Either[str, FrozenSet[str]]:
        """
        Добавляет/удаляет товар. Локальный набор меняется только после
        успешного ответа бэкенда; без сессии Left(AUTH_REQUIRED).
        """
        if session is None:
            return Either.left(AUTH_REQUIRED)

        try:
            if product_id in wishlist:
                await self.client.delete(
                    "wishlist",
                    {"user_id": eq(session.user_id), "product_id": eq(product_id)},
                    access_token=session.access_token,
                )
                return Either.right(wishlist - {product_id})

            await self.client.insert(
                "wishlist",
                [{"user_id": session.user_id, "product_id": product_id}],
                access_token=session.access_token,
                returning=False,
            )
            return Either.right(wishlist | {product_id})
        except BackendError as e:
            logger.exception(
                "Wishlist toggle failed",
                extra={"user_id": session.user_id, "product_id": product_id},
            )
            return Either.left(e.message)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    wishlist: FrozenSet[str]


class CheckoutService:
    def __init__(self, client: BackendClient):
        self.client = client

    def build_order(self, state: ShopState, created_at: str) -> Order:
        session = state.session
        return Order(
            id="",
            user_id=session.user_id if session else "",
            email=state.email or (session.email if session else ""),
            recipient=state.recipient,
            phone=state.recipient.phone,
            items=order_items(state.cart),
            total_price=total_price(state.cart),
            payment_category=state.payment_category,
            payment_method=state.payment_method,
            created_at=created_at,
        )

    async def checkout(
        self, state: ShopState, now: Optional[datetime] = None
    ) -> Either[Union[str, FormErrors], CheckoutResult]:
        """
        1. валидация формы (FormErrors блокирует оформление)
        2. требуется сессия
        3. вставка заказа
        4. удаление заказанных товаров из избранного (ошибка только логируется)
        """
        errors = validate_form(
            state.email,
            state.recipient.phone,
            state.recipient.last_name,
            state.recipient.first_name,
        )
        if not errors.is_valid:
            return Either.left(errors)
        if not state.cart.lines:
            return Either.left(MSG_EMPTY_CART)
        if state.session is None:
            return Either.left(AUTH_REQUIRED)

        session = state.session
        created_at = (now or datetime.now(timezone.utc)).isoformat()
        order = self.build_order(state, created_at)

        try:
            rows = await self.client.insert(
                "order_history", [order_to_row(order)], access_token=session.access_token
            )
        except BackendError:
            logger.exception("Order insert failed", extra={"user_id": session.user_id})
            return Either.left(MSG_ORDER_FAILED)

        # бэкенд возвращает строку с id; остальное берём из собранного заказа
        saved = (
            Maybe.of(rows[0].get("id") if rows and isinstance(rows[0], dict) else None)
            .map(lambda order_id: replace(order, id=str(order_id)))
            .get_or_else(order)
        )
        logger.info(
            "Order placed", extra={"user_id": session.user_id, "order_id": saved.id}
        )

        product_ids = tuple(item.id for item in order.items)
        wishlist = state.wishlist
        try:
            await self.client.delete(
                "wishlist",
                {"user_id": eq(session.user_id), "product_id": in_(product_ids)},
                access_token=session.access_token,
            )
            wishlist = wishlist - frozenset(product_ids)
        except BackendError:
            # заказ уже сохранён, компенсации нет
            logger.exception("Wishlist cleanup failed", extra={"user_id": session.user_id})

        return Either.right(CheckoutResult(order=saved, wishlist=wishlist))
