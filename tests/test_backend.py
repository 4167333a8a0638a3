import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import json
import httpx
import pytest
from storefront.backend import BackendClient, BackendError, eq, in_, run_sync


def test_postgrest_filters():
    assert eq("u1") == "eq.u1"
    assert in_(["a", "b"]) == 'in.("a","b")'


@pytest.mark.asyncio
async def test_select_sends_keys_and_filters(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/products", json=[{"id": "p1"}])

    rows = await client.select("products", {"category": eq("tv")}, order="created_at.desc")

    assert rows == [{"id": "p1"}]
    request = fake_backend.requests[0]
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert request.url.params["select"] == "*"
    assert request.url.params["category"] == "eq.tv"
    assert request.url.params["order"] == "created_at.desc"


@pytest.mark.asyncio
async def test_user_token_overrides_anon_key(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/wishlist", json=[])
    await client.select("wishlist", access_token="user-token")
    assert fake_backend.requests[0].headers["Authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_insert_returns_representation(client, fake_backend):
    fake_backend.route("POST", "/rest/v1/order_history", status=201, json=[{"id": "o1"}])

    rows = await client.insert("order_history", [{"user_id": "u1"}])

    assert rows == [{"id": "o1"}]
    request = fake_backend.requests[0]
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == [{"user_id": "u1"}]


@pytest.mark.asyncio
async def test_insert_minimal_has_no_body(client, fake_backend):
    fake_backend.route("POST", "/rest/v1/wishlist", status=201)
    assert await client.insert("wishlist", [{"user_id": "u1"}], returning=False) == []


@pytest.mark.asyncio
async def test_delete_requires_filter(client):
    with pytest.raises(ValueError):
        await client.delete("wishlist", {})


@pytest.mark.asyncio
async def test_http_error_becomes_backend_error(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/products", status=401, json={"message": "JWT expired"})

    with pytest.raises(BackendError) as exc:
        await client.select("products")

    assert exc.value.status_code == 401
    assert exc.value.message == "JWT expired"


@pytest.mark.asyncio
async def test_transport_error_becomes_backend_error(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/products", error=httpx.ConnectError)

    with pytest.raises(BackendError) as exc:
        await client.select("products")

    assert exc.value.status_code is None


@pytest.mark.asyncio
async def test_sign_in_builds_session(client, fake_backend):
    fake_backend.route(
        "POST",
        "/auth/v1/token",
        json={
            "access_token": "tok",
            "refresh_token": "ref",
            "user": {"id": "u1", "email": "user@example.com"},
        },
    )

    session = await client.sign_in("user@example.com", "secret")

    assert session.user_id == "u1"
    assert session.access_token == "tok"
    assert fake_backend.requests[0].url.params["grant_type"] == "password"


@pytest.mark.asyncio
async def test_sign_in_rejected(client, fake_backend):
    fake_backend.route(
        "POST", "/auth/v1/token", status=400, json={"error_description": "Invalid login credentials"}
    )
    with pytest.raises(BackendError) as exc:
        await client.sign_in("user@example.com", "wrong")
    assert exc.value.message == "Invalid login credentials"


@pytest.mark.asyncio
async def test_sign_up_accepts_both_response_shapes(client, fake_backend):
    fake_backend.route("POST", "/auth/v1/signup", json={"id": "u2", "email": "n@x.io"})
    assert (await client.sign_up("n@x.io", "secret"))["id"] == "u2"

    fake_backend.route("POST", "/auth/v1/signup", json={"user": {"id": "u3"}, "session": None})
    assert (await client.sign_up("n@x.io", "secret"))["id"] == "u3"


def test_run_sync(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/products", json=[])
    assert run_sync(client.select("products")) == []


@pytest.mark.asyncio
async def test_select_one_limits_and_unwraps(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/profiles", json=[{"id": "u1", "full_name": "Тарас"}])

    row = await client.select_one("profiles", {"id": eq("u1")}, access_token="user-token")

    assert row == {"id": "u1", "full_name": "Тарас"}
    assert fake_backend.requests[0].url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_select_one_missing_row(client, fake_backend):
    fake_backend.route("GET", "/rest/v1/profiles", json=[])
    assert await client.select_one("profiles", {"id": eq("u2")}) is None


@pytest.mark.asyncio
async def test_sign_out_uses_user_token(client, fake_backend, session):
    fake_backend.route("POST", "/auth/v1/logout", status=204)

    await client.sign_out(session)

    assert fake_backend.requests[0].headers["Authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_non_json_success_body_is_backend_error(settings):
    """HTML-страница прокси с кодом 200 превращается в BackendError"""
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, text="<html>gateway</html>")
    )
    client = BackendClient(settings, transport=transport)

    with pytest.raises(BackendError) as exc:
        await client.select("products")
    assert exc.value.status_code == 200
