import sys
import os
import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.backend import BackendClient, run_sync
from storefront.cart import total_items, total_price
from storefront.config import get_settings
from storefront.domain import FormErrors
from storefront.filters import (
    CATEGORIES,
    SORT_LABELS,
    SORT_MODES,
    apply_filters,
    available_specs,
    by_brand,
    by_category,
    clamp_price_range,
    extract_specs,
    has_active_filters,
    search_titles,
    sub_categories,
)
from storefront.hooks import FetchState, fetch_products, fetch_profile, fetch_wishlist, load_account
from storefront.logging_config import setup_logging
from storefront.records import split_full_name
from storefront.search import Debouncer, iter_suggestions
from storefront.service import (
    AUTH_REQUIRED,
    MSG_AUTH_REQUIRED,
    MSG_ORDER_OK,
    PAYMENT_CATEGORIES,
    PAYMENT_LABELS,
    PAYMENT_METHODS,
    AuthService,
    CheckoutService,
    WishlistService,
)
from storefront.state import Action, ShopState, create_shop_bus
from storefront.validation import (
    filter_email_input,
    filter_name_input,
    format_date,
    format_phone_input,
    format_price,
    short_order_id,
    validate_email,
    validate_phone,
    MSG_EMAIL_INVALID,
    MSG_PHONE_INVALID,
)

settings = get_settings()

PAGE_CATALOG = "🏪 Каталог"
PAGE_CART = "🛒 Кошик"
PAGE_PROFILE = "👤 Профіль"
PAGE_AUTH = "🔑 Вхід"
PAGES = [PAGE_CATALOG, PAGE_CART, PAGE_PROFILE, PAGE_AUTH]


# ============ Ресурсы (один раз на процесс) ============
@st.cache_resource
def get_logger():
    return setup_logging("storefront", settings.LOG_LEVEL, settings.LOG_JSON)


@st.cache_resource
def get_client():
    return BackendClient(settings)


@st.cache_resource
def get_bus():
    return create_shop_bus()


logger = get_logger()
client = get_client()
bus = get_bus()
auth_service = AuthService(client, settings)
wishlist_service = WishlistService(client)
checkout_service = CheckoutService(client)


# ============ Инициализация ============
st.set_page_config(
    page_title="NovaTech",
    page_icon="🛒",
    layout="wide",
    initial_sidebar_state="expanded",
)

if "shop" not in st.session_state:
    st.session_state.shop = ShopState()

if "products" not in st.session_state:
    # один запрос на сессию ("монтирование")
    st.session_state.products = run_sync(fetch_products(client))

if "debouncer" not in st.session_state:
    st.session_state.debouncer = Debouncer(settings.SEARCH_DEBOUNCE_SECONDS)
    st.session_state.suggestions = ()

if "redirect_to" in st.session_state:
    st.session_state.page = st.session_state.pop("redirect_to")


# ============ Вспомогательные функции ============
def shop() -> ShopState:
    return st.session_state.shop


def dispatch(name: str, **payload):
    """Единственная точка изменения состояния страницы"""
    st.session_state.shop = bus.dispatch(Action(name, payload), st.session_state.shop)


def redirect(page: str):
    st.session_state.redirect_to = page
    st.rerun()


def products() -> tuple:
    state: FetchState = st.session_state.products
    return state.data


def on_session_started(session):
    """После входа: сессия, избранное, автозаполнение получателя из профиля"""
    dispatch("SET_SESSION", session=session)
    wishlist = run_sync(fetch_wishlist(client, session))
    if wishlist.error is None:
        dispatch("WISHLIST_LOADED", product_ids=wishlist.data)
    profile = run_sync(fetch_profile(client, session))
    if profile.data:
        first, last = split_full_name(profile.data[0].full_name)
        dispatch(
            "SET_RECIPIENT",
            first_name=first,
            last_name=last,
            phone=profile.data[0].phone or shop().recipient.phone,
        )
    st.session_state.pop("account", None)


def toggle_wishlist(product_id: str):
    result = run_sync(wishlist_service.toggle(shop().session, shop().wishlist, product_id))
    if result.is_right:
        dispatch("WISHLIST_LOADED", product_ids=result.value)
    elif result.value == AUTH_REQUIRED:
        redirect(PAGE_AUTH)
    else:
        st.toast(f"❌ {result.value}")


def product_image(product):
    if product.image_url:
        st.image(product.image_url, use_container_width=True)
    else:
        st.markdown("🖼️ *Без зображення*")


# ============ Обработчики полей формы ============
def on_email_change():
    value = filter_email_input(st.session_state.checkout_email)
    st.session_state.checkout_email = value
    dispatch("SET_EMAIL", email=value)
    errors = shop().errors
    message = MSG_EMAIL_INVALID if value and not validate_email(value) else ""
    dispatch("SET_ERRORS", errors=FormErrors(message, errors.phone, errors.last_name, errors.first_name))


def on_phone_change():
    value = format_phone_input(st.session_state.checkout_phone, shop().recipient.phone)
    st.session_state.checkout_phone = value
    dispatch("SET_RECIPIENT", phone=value)
    errors = shop().errors
    message = MSG_PHONE_INVALID if not validate_phone(value) else ""
    dispatch("SET_ERRORS", errors=FormErrors(errors.email, message, errors.last_name, errors.first_name))


def on_name_change(key: str, field: str):
    value = filter_name_input(st.session_state[key])
    st.session_state[key] = value
    dispatch("SET_RECIPIENT", **{field: value})


def on_search_change():
    st.session_state.debouncer.schedule(st.session_state.search_text)


# ============ HEADER ============
state = shop()
header_cols = st.columns([6, 2, 2])
with header_cols[0]:
    st.title("🛒 NovaTech")
with header_cols[1]:
    if state.session:
        st.caption(f"👤 {state.session.email}")
with header_cols[2]:
    st.metric("🛒 У кошику", total_items(state.cart))


# ============ SIDEBAR ============
with st.sidebar:
    st.header("📂 Навігація")
    page = st.radio("Розділ:", PAGES, key="page", label_visibility="collapsed")

    st.divider()
    st.subheader("Категорії")
    filters = shop().filters
    category_labels = {name: label for name, label in CATEGORIES}
    selected = st.radio(
        "Категорія",
        ["all"] + [name for name, _ in CATEGORIES],
        index=(["all"] + [name for name, _ in CATEGORIES]).index(filters.category or "all"),
        format_func=lambda name: "Всі товари" if name == "all" else category_labels[name],
        label_visibility="collapsed",
    )
    new_category = None if selected == "all" else selected
    if new_category != filters.category:
        dispatch("SET_FILTERS", category=new_category)
        st.rerun()

    brands = sub_categories(products(), filters.category)
    if brands:
        brand = st.selectbox("Бренд", ["Всі"] + list(brands), key="brand_select")
        new_brand = None if brand == "Всі" else brand
        if new_brand != filters.brand:
            dispatch("SET_FILTERS", brand=new_brand)
            st.rerun()


# ============ PAGE: КАТАЛОГ ============
if page == PAGE_CATALOG:
    filters = shop().filters

    # Поиск
    search_cols = st.columns([6, 1])
    with search_cols[0]:
        st.text_input(
            "🔍 Пошук",
            key="search_text",
            on_change=on_search_change,
            placeholder="Я шукаю...",
            label_visibility="collapsed",
        )
    with search_cols[1]:
        if st.button("Знайти", use_container_width=True):
            dispatch("SET_FILTERS", search_text=st.session_state.search_text, category=None)
            st.session_state.suggestions = ()
            st.rerun()

    @st.fragment(run_every=settings.SEARCH_DEBOUNCE_SECONDS)
    def suggestions_box():
        text = st.session_state.debouncer.poll()
        if text is not None:
            st.session_state.suggestions = tuple(
                iter_suggestions(products(), text, settings.SUGGESTIONS_LIMIT)
            )
        for p in st.session_state.suggestions:
            if st.button(f"🔎 {p.title}", key=f"suggest_{p.id}"):
                dispatch("SET_FILTERS", search_text=p.title, category=None)
                st.session_state.suggestions = ()
                st.rerun(scope="app")

    suggestions_box()

    # Фильтр-бар
    bar = st.columns([3, 2, 2, 2])
    with bar[0]:
        sort_by = st.selectbox(
            "Сортування",
            SORT_MODES,
            index=SORT_MODES.index(filters.sort_by),
            format_func=SORT_LABELS.get,
        )
    with bar[1]:
        min_price = st.number_input("💵 Мін", min_value=0, value=int(filters.price_range[0]), step=100)
    with bar[2]:
        max_price = st.number_input(
            "💵 Макс", min_value=0, value=int(filters.price_range[1]), step=100
        )
    price_range = clamp_price_range(min_price, max_price, settings.MAX_PRICE)
    if sort_by != filters.sort_by or price_range != tuple(filters.price_range):
        dispatch("SET_FILTERS", sort_by=sort_by, price_range=price_range)
        filters = shop().filters
    with bar[3]:
        st.caption(f"{format_price(price_range[0])} - {format_price(price_range[1])}")
        if has_active_filters(
            filters.category, filters.price_range, filters.sort_by, filters.specs_map, settings.MAX_PRICE
        ) or filters.search_text:
            if st.button("✕ Очистити", type="primary"):
                dispatch("RESET_FILTERS")
                st.rerun()

    # Базовый набор: категория / бренд / поиск
    base = products()
    if filters.category:
        base = tuple(filter(by_category(filters.category), base))
    if filters.brand:
        base = tuple(filter(by_brand(filters.brand), base))
    if filters.search_text:
        base = search_titles(base, filters.search_text)

    # Фильтры по характеристикам
    specs_options = available_specs(base)
    if specs_options:
        with st.expander("⚙️ Характеристики"):
            spec_cols = st.columns(min(len(specs_options), 4))
            selected_specs = {}
            for idx, (key, values) in enumerate(specs_options.items()):
                with spec_cols[idx % len(spec_cols)]:
                    current = filters.specs_map.get(key, "")
                    options = [""] + list(values)
                    choice = st.selectbox(
                        key,
                        options,
                        index=options.index(current) if current in options else 0,
                        format_func=lambda v: v or "Будь-який",
                        key=f"spec_{key}",
                    )
                    selected_specs[key] = choice
            if {k: v for k, v in selected_specs.items() if v} != filters.specs_map:
                dispatch("SET_FILTERS", specs=selected_specs)
                filters = shop().filters

    products_state: FetchState = st.session_state.products
    if products_state.loading:
        st.info("Завантаження...")
    elif products_state.error:
        st.error(products_state.error)
    else:
        visible = apply_filters(base, filters.price_range, filters.specs_map, filters.sort_by)
        st.info(f"🔍 Знайдено товарів: **{len(visible)}**")

        if not visible:
            st.warning("Товари не знайдено. Спробуйте змінити фільтри.")

        grid = st.columns(3)
        for idx, p in enumerate(visible):
            with grid[idx % 3]:
                with st.container(border=True):
                    product_image(p)
                    st.markdown(f"**{p.title}**")
                    st.write(format_price(p.price))
                    buttons = st.columns(2)
                    with buttons[0]:
                        if st.button("🛒 В кошик", key=f"add_{p.id}"):
                            dispatch("ADD_TO_CART", product=p)
                            st.toast(f"✅ {p.title}")
                            st.rerun()
                    with buttons[1]:
                        in_wishlist = p.id in shop().wishlist
                        if st.button(
                            "♥" if in_wishlist else "♡",
                            key=f"wish_{p.id}",
                            help="Видалити з бажань" if in_wishlist else "Додати в бажання",
                        ):
                            toggle_wishlist(p.id)
                            st.rerun()
                    with st.expander("Детальніше"):
                        if p.brand:
                            st.caption(f"Бренд: {p.brand}")
                        st.write(p.description or "Опис відсутній")
                        for key, values in extract_specs(p.description).items():
                            st.write(f"**{key}:** {', '.join(values)}")
                        for key, value in (p.specs or {}).items():
                            st.write(f"**{key}:** {value}")


# ============ PAGE: КОШИК ============
elif page == PAGE_CART:
    st.header("🛒 Кошик")
    state = shop()

    if not state.cart.lines:
        st.info("🛍️ Кошик порожній. Перейдіть до каталогу!")
    else:
        for line in state.cart.lines:
            p = line.product
            cols = st.columns([5, 1, 1, 1, 2, 1])
            with cols[0]:
                st.write(f"**{p.title}**")
                st.caption(f"{format_price(p.price)} x {line.quantity}")
            with cols[1]:
                if st.button("−", key=f"dec_{p.id}"):
                    dispatch("SET_QUANTITY", product_id=p.id, quantity=line.quantity - 1)
                    st.rerun()
            with cols[2]:
                st.write(line.quantity)
            with cols[3]:
                if st.button("+", key=f"inc_{p.id}"):
                    dispatch("SET_QUANTITY", product_id=p.id, quantity=line.quantity + 1)
                    st.rerun()
            with cols[4]:
                st.write(format_price(line.subtotal))
            with cols[5]:
                if st.button("🗑️", key=f"remove_{p.id}"):
                    dispatch("REMOVE_FROM_CART", product_id=p.id)
                    st.rerun()

        st.divider()
        st.subheader("Отримувач")

        # Значения виджетов синхронизируются из ShopState при первом показе
        st.session_state.setdefault("checkout_email", state.email)
        st.session_state.setdefault("checkout_last_name", state.recipient.last_name)
        st.session_state.setdefault("checkout_first_name", state.recipient.first_name)
        st.session_state.setdefault("checkout_patronymic", state.recipient.patronymic)
        st.session_state.setdefault("checkout_phone", state.recipient.phone)

        errors = shop().errors
        st.text_input("Email", key="checkout_email", on_change=on_email_change)
        if errors.email:
            st.caption(f":red[{errors.email}]")

        name_cols = st.columns(3)
        with name_cols[0]:
            st.text_input(
                "Прізвище",
                key="checkout_last_name",
                on_change=on_name_change,
                args=("checkout_last_name", "last_name"),
            )
            if errors.last_name:
                st.caption(f":red[{errors.last_name}]")
        with name_cols[1]:
            st.text_input(
                "Ім'я",
                key="checkout_first_name",
                on_change=on_name_change,
                args=("checkout_first_name", "first_name"),
            )
            if errors.first_name:
                st.caption(f":red[{errors.first_name}]")
        with name_cols[2]:
            st.text_input(
                "По батькові",
                key="checkout_patronymic",
                on_change=on_name_change,
                args=("checkout_patronymic", "patronymic"),
            )

        st.text_input("Мобільний телефон", key="checkout_phone", on_change=on_phone_change)
        if errors.phone:
            st.caption(f":red[{errors.phone}]")

        st.subheader("Оплата")
        category = st.radio(
            "Спосіб оплати",
            PAYMENT_CATEGORIES,
            index=PAYMENT_CATEGORIES.index(state.payment_category),
            format_func=PAYMENT_LABELS.get,
        )
        method = state.payment_method
        if category == "pay_now":
            method = st.radio(
                "Метод",
                PAYMENT_METHODS,
                index=PAYMENT_METHODS.index(state.payment_method),
                format_func=PAYMENT_LABELS.get,
                horizontal=True,
            )
        if (category, method) != (state.payment_category, state.payment_method):
            dispatch("SET_PAYMENT", category=category, method=method)

        st.markdown(f"### 💰 Всього: **{format_price(total_price(shop().cart))}**")

        if st.button("✅ Оформити замовлення", type="primary", use_container_width=True):
            with st.spinner("Збереження замовлення..."):
                result = run_sync(checkout_service.checkout(shop()))

            if result.is_right:
                dispatch("ORDER_PLACED", wishlist=result.value.wishlist)
                for key in (
                    "checkout_email",
                    "checkout_last_name",
                    "checkout_first_name",
                    "checkout_patronymic",
                    "checkout_phone",
                ):
                    st.session_state.pop(key, None)
                st.session_state.pop("account", None)
                st.success(f"🎉 {MSG_ORDER_OK}")
                st.balloons()
            elif isinstance(result.value, FormErrors):
                dispatch("SET_ERRORS", errors=result.value)
                st.rerun()
            elif result.value == AUTH_REQUIRED:
                st.warning(MSG_AUTH_REQUIRED)
                redirect(PAGE_AUTH)
            else:
                st.error(f"❌ {result.value}")


# ============ PAGE: ПРОФІЛЬ ============
elif page == PAGE_PROFILE:
    session = shop().session
    if session is None:
        redirect(PAGE_AUTH)

    if st.session_state.get("account") is None:
        with st.spinner("Завантаження..."):
            st.session_state.account = run_sync(load_account(client, session))
    account = st.session_state.account

    st.header("👤 Мій профіль")
    profile_state: FetchState = account["profile"]
    if profile_state.error:
        st.error(profile_state.error)
    elif profile_state.data:
        profile = profile_state.data[0]
        cols = st.columns(4)
        with cols[0]:
            st.markdown(f"**Email:**  \n{profile.email}")
        with cols[1]:
            st.markdown(f"**Ім'я:**  \n{profile.full_name or 'Не заповнено'}")
        with cols[2]:
            st.markdown(f"**Телефон:**  \n{profile.phone or 'Не заповнено'}")
        with cols[3]:
            member_since = format_date(profile.created_at) if profile.created_at else "Невідомо"
            st.markdown(f"**Учасник з:**  \n{member_since}")

    action_cols = st.columns(2)
    with action_cols[0]:
        if st.button("🔄 Оновити"):
            st.session_state.pop("account", None)
            st.rerun()
    with action_cols[1]:
        if st.button("Вийти з облікового запису"):
            run_sync(auth_service.logout(session))
            dispatch("SET_SESSION", session=None)
            st.session_state.pop("account", None)
            redirect(PAGE_CATALOG)

    tab_orders, tab_wishlist = st.tabs(["🧾 Історія замовлень", "♥ Список бажань"])

    with tab_orders:
        orders_state: FetchState = account["orders"]
        if orders_state.error:
            st.error(orders_state.error)
        elif not orders_state.data:
            st.info("У вас ще немає замовлень")
        for order in orders_state.data:
            title = (
                f"Замовлення #{short_order_id(order.id)} · {format_date(order.created_at)} · "
                f"{format_price(order.total_price)} · {len(order.items)} товарів"
            )
            with st.expander(title):
                r = order.recipient
                st.write(f"**Отримувач:** {r.last_name} {r.first_name} {r.patronymic}".strip())
                st.write(f"**Телефон:** {order.phone}")
                st.write(
                    f"**Оплата:** {PAYMENT_LABELS.get(order.payment_category, order.payment_category)}"
                )
                for item in order.items:
                    st.write(
                        f"• {item.title} · {format_price(item.price)} x {item.quantity}"
                    )

    with tab_wishlist:
        wishlist = shop().wishlist
        liked = tuple(p for p in products() if p.id in wishlist)
        if not liked:
            st.info("Список бажань порожній")
        for p in liked:
            cols = st.columns([5, 2, 2, 1])
            with cols[0]:
                st.write(f"**{p.title}**")
            with cols[1]:
                st.write(format_price(p.price))
            with cols[2]:
                if st.button("🛒 В кошик", key=f"wl_add_{p.id}"):
                    dispatch("ADD_TO_CART", product=p)
                    st.toast(f"✅ {p.title}")
            with cols[3]:
                if st.button("✕", key=f"wl_remove_{p.id}"):
                    toggle_wishlist(p.id)
                    st.rerun()


# ============ PAGE: ВХІД ============
elif page == PAGE_AUTH:
    st.header("🔑 NovaTech")

    if shop().session:
        st.success(f"Ви увійшли як {shop().session.email}")

    tab_login, tab_register = st.tabs(["Увійти", "Реєстрація"])

    with tab_login:
        with st.form("login_form"):
            login_email = st.text_input("Email")
            login_password = st.text_input("Пароль", type="password")
            submitted = st.form_submit_button("Увійти", type="primary")
        if submitted:
            result = run_sync(auth_service.login(login_email, login_password))
            if result.is_right:
                on_session_started(result.value)
                redirect(PAGE_PROFILE)
            else:
                st.error(result.value)

        st.caption("або")
        if st.button("🚀 Демо-вхід"):
            result = run_sync(auth_service.demo_login())
            if result.is_right:
                on_session_started(result.value)
                redirect(PAGE_PROFILE)
            else:
                st.error(result.value)

    with tab_register:
        with st.form("register_form", clear_on_submit=False):
            reg_name = st.text_input("Ім'я та прізвище")
            reg_email = st.text_input("Email")
            reg_password = st.text_input("Пароль", type="password")
            reg_confirm = st.text_input("Підтвердіть пароль", type="password")
            registered = st.form_submit_button("Зареєструватися", type="primary")
        if registered:
            result = run_sync(
                auth_service.register(reg_email, reg_password, reg_confirm, reg_name)
            )
            if result.is_right:
                st.success(result.value)
            else:
                st.error(result.value)
