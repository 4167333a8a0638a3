"""
Клиент внешнего хостинг-бэкенда (Supabase-совместимый):
GoTrue-авторизация на /auth/v1 и строки таблиц через PostgREST на /rest/v1.

На каждый запрос свой httpx.AsyncClient. Повторов, дедупликации и отмены нет.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Iterable, List, Optional, TypeVar

import httpx

from .config import Settings
from .domain import AuthSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Dict[str, Any]


class BackendError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ============ Фильтры PostgREST ============


def eq(value: Any) -> str:
    return f"eq.{value}"


def in_(values: Iterable[Any]) -> str:
    quoted = ",".join('"{}"'.format(str(v).replace('"', '\\"')) for v in values)
    return f"in.({quoted})"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class BackendClient:
    """Тонкая обёртка над REST-поверхностью бэкенда"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _headers(self, access_token: Optional[str] = None, extra: Optional[dict] = None) -> dict:
        key = self.settings.SUPABASE_ANON_KEY
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {access_token or key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict] = None,
    ) -> Any:
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(access_token, headers),
                )
            except httpx.RequestError as e:
                raise BackendError(f"Backend unavailable: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "%s %s failed: %s",
                method,
                response.request.url.path,
                message,
                extra={"status_code": response.status_code},
            )
            raise BackendError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            # например, HTML-страница прокси с кодом 200
            logger.warning(
                "%s %s returned non-JSON body",
                method,
                response.request.url.path,
                extra={"status_code": response.status_code},
            )
            raise BackendError("Malformed response", response.status_code) from e

    # ============ Авторизация ============

    async def sign_up(self, email: str, password: str) -> Row:
        """Возвращает созданного пользователя (как минимум с полем id)"""
        data = await self._request(
            "POST",
            f"{self.settings.auth_url}/signup",
            json={"email": email, "password": password},
        )
        user = (data.get("user") or data) if isinstance(data, dict) else None
        if not user or "id" not in user:
            raise BackendError("Sign-up response has no user")
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            f"{self.settings.auth_url}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        try:
            user = data["user"]
            return AuthSession(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token", ""),
                user_id=str(user["id"]),
                email=user.get("email") or email,
            )
        except (KeyError, TypeError) as e:
            raise BackendError("Malformed sign-in response") from e

    async def sign_out(self, session: AuthSession) -> None:
        await self._request(
            "POST", f"{self.settings.auth_url}/logout", access_token=session.access_token
        )

    # ============ Таблицы ============

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        columns: str = "*",
        access_token: Optional[str] = None,
    ) -> List[Row]:
        params = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        data = await self._request(
            "GET", f"{self.settings.rest_url}/{table}", params=params, access_token=access_token
        )
        return data or []

    async def select_one(
        self,
        table: str,
        filters: Dict[str, str],
        access_token: Optional[str] = None,
    ) -> Optional[Row]:
        rows = await self.select(table, {**filters, "limit": "1"}, access_token=access_token)
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        rows: List[Row],
        access_token: Optional[str] = None,
        returning: bool = True,
    ) -> List[Row]:
        prefer = "return=representation" if returning else "return=minimal"
        data = await self._request(
            "POST",
            f"{self.settings.rest_url}/{table}",
            json=rows,
            headers={"Prefer": prefer},
            access_token=access_token,
        )
        return data or []

    async def delete(
        self, table: str, filters: Dict[str, str], access_token: Optional[str] = None
    ) -> None:
        if not filters:
            # PostgREST без фильтра удалил бы всю таблицу
            raise ValueError("delete() requires at least one filter")
        await self._request(
            "DELETE", f"{self.settings.rest_url}/{table}", params=filters, access_token=access_token
        )


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Синхронная обёртка для использования в UI"""
    return asyncio.run(coro)
