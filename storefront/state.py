from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from . import cart as cart_ops
from .domain import AuthSession, Cart, FormErrors, Product, Recipient
from .filters import DEFAULT_PRICE_RANGE, DEFAULT_SORT


@dataclass(frozen=True)
class CatalogFilters:
    category: Optional[str] = None
    brand: Optional[str] = None
    price_range: Tuple[float, float] = DEFAULT_PRICE_RANGE
    sort_by: str = DEFAULT_SORT
    specs: Tuple[Tuple[str, str], ...] = ()
    search_text: str = ""

    @property
    def specs_map(self) -> Dict[str, str]:
        return dict(self.specs)


@dataclass(frozen=True)
class ShopState:
    """Всё изменяемое состояние страницы; меняется только через dispatch()"""

    cart: Cart = Cart()
    wishlist: FrozenSet[str] = frozenset()
    filters: CatalogFilters = CatalogFilters()
    session: Optional[AuthSession] = None
    email: str = ""
    recipient: Recipient = Recipient()
    errors: FormErrors = FormErrors()
    payment_category: str = "on_delivery"
    payment_method: str = "card"
    last_action: Optional[str] = None


@dataclass(frozen=True)
class Action:
    name: str
    payload: Dict = field(default_factory=dict, hash=False)


Handler = Callable[[Action, ShopState], ShopState]


@dataclass(frozen=True)
class EventBus:
    """
    Иммутабельная шина действий.
    Подписчики это чистые функции (Action, ShopState) -> ShopState
    """

    subscribers: Tuple[Tuple[str, Handler], ...] = ()

    def subscribe(self, name: str, handler: Handler) -> "EventBus":
        """Возвращает новую шину с добавленным подписчиком"""
        return EventBus(subscribers=self.subscribers + ((name, handler),))

    def dispatch(self, action: Action, state: ShopState) -> ShopState:
        """Применяет все обработчики действия последовательно (fold)"""
        handlers = tuple(h for name, h in self.subscribers if name == action.name)
        new_state = reduce(lambda s, h: h(action, s), handlers, state)
        return replace(new_state, last_action=action.name) if handlers else state


# ============ Обработчики ============


def handle_add_to_cart(action: Action, state: ShopState) -> ShopState:
    product: Product = action.payload["product"]
    return replace(state, cart=cart_ops.add_to_cart(state.cart, product))


def handle_remove_from_cart(action: Action, state: ShopState) -> ShopState:
    return replace(
        state, cart=cart_ops.remove_from_cart(state.cart, action.payload["product_id"])
    )


def handle_set_quantity(action: Action, state: ShopState) -> ShopState:
    return replace(
        state,
        cart=cart_ops.set_quantity(
            state.cart, action.payload["product_id"], int(action.payload["quantity"])
        ),
    )


def handle_clear_cart(action: Action, state: ShopState) -> ShopState:
    return replace(state, cart=cart_ops.clear_cart(state.cart))


def handle_wishlist_added(action: Action, state: ShopState) -> ShopState:
    return replace(state, wishlist=state.wishlist | {action.payload["product_id"]})


def handle_wishlist_removed(action: Action, state: ShopState) -> ShopState:
    ids = action.payload.get("product_ids") or (action.payload["product_id"],)
    return replace(state, wishlist=state.wishlist - frozenset(ids))


def handle_wishlist_loaded(action: Action, state: ShopState) -> ShopState:
    return replace(state, wishlist=frozenset(action.payload["product_ids"]))


def handle_set_filters(action: Action, state: ShopState) -> ShopState:
    changes = dict(action.payload)
    if "specs" in changes:
        changes["specs"] = tuple(sorted((k, v) for k, v in changes["specs"].items() if v))
    if "category" in changes and "brand" not in changes:
        changes["brand"] = None
    return replace(state, filters=replace(state.filters, **changes))


def handle_reset_filters(action: Action, state: ShopState) -> ShopState:
    return replace(state, filters=CatalogFilters())


def handle_set_session(action: Action, state: ShopState) -> ShopState:
    session: Optional[AuthSession] = action.payload.get("session")
    if session is None:
        return replace(state, session=None, wishlist=frozenset(), email="")
    return replace(state, session=session, email=state.email or session.email)


def handle_set_recipient(action: Action, state: ShopState) -> ShopState:
    return replace(state, recipient=replace(state.recipient, **action.payload))


def handle_set_email(action: Action, state: ShopState) -> ShopState:
    return replace(state, email=action.payload["email"])


def handle_set_errors(action: Action, state: ShopState) -> ShopState:
    return replace(state, errors=action.payload["errors"])


def handle_set_payment(action: Action, state: ShopState) -> ShopState:
    return replace(
        state,
        payment_category=action.payload.get("category", state.payment_category),
        payment_method=action.payload.get("method", state.payment_method),
    )


def handle_order_placed(action: Action, state: ShopState) -> ShopState:
    """Очистка корзины и формы после успешного заказа"""
    email = state.session.email if state.session else ""
    return replace(
        state,
        cart=Cart(),
        wishlist=frozenset(action.payload.get("wishlist", state.wishlist)),
        email=email,
        recipient=Recipient(),
        errors=FormErrors(),
    )


# ============ Сборка ============


def create_shop_bus() -> EventBus:
    bus = EventBus()
    for name, handler in (
        ("ADD_TO_CART", handle_add_to_cart),
        ("REMOVE_FROM_CART", handle_remove_from_cart),
        ("SET_QUANTITY", handle_set_quantity),
        ("CLEAR_CART", handle_clear_cart),
        ("WISHLIST_ADDED", handle_wishlist_added),
        ("WISHLIST_REMOVED", handle_wishlist_removed),
        ("WISHLIST_LOADED", handle_wishlist_loaded),
        ("SET_FILTERS", handle_set_filters),
        ("RESET_FILTERS", handle_reset_filters),
        ("SET_SESSION", handle_set_session),
        ("SET_RECIPIENT", handle_set_recipient),
        ("SET_EMAIL", handle_set_email),
        ("SET_ERRORS", handle_set_errors),
        ("SET_PAYMENT", handle_set_payment),
        ("ORDER_PLACED", handle_order_placed),
    ):
        bus = bus.subscribe(name, handler)
    return bus


def apply_actions(bus: EventBus, actions: Iterable[Action], state: ShopState) -> ShopState:
    return reduce(lambda s, a: bus.dispatch(a, s), actions, state)
