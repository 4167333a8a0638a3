import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from storefront.domain import Product


@pytest.fixture
def sample_products():
    return (
        Product(
            id="p1",
            title="Ноутбук Lenovo",
            price=30000,
            category="laptops",
            brand="Lenovo",
            description="16GB RAM, 512GB SSD, OLED, 120Hz",
            created_at="2025-03-01T10:00:00Z",
        ),
        Product(
            id="p2",
            title="Apple iPhone 15",
            price=45000,
            category="phones",
            brand="Apple",
            description="Apple A16, OLED, 6.1 дюйма, 3349mAh",
            created_at="2025-05-10T10:00:00Z",
        ),
        Product(
            id="p3",
            title="Samsung TV",
            price=25000,
            category="tv",
            brand="Samsung",
            description="4K UHD, LCD, 60Hz",
        ),
        Product(
            id="p4",
            title="Чохол",
            price=500,
            category="accessories",
            created_at="2024-12-31T23:59:59Z",
        ),
    )


import httpx
from storefront.backend import BackendClient
from storefront.config import Settings
from storefront.domain import AuthSession


class FakeBackend:
    """Подменяет хостинг-бэкенд через httpx.MockTransport и пишет все запросы"""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, status=200, json=None, error=None):
        self.routes[(method, path)] = (status, json, error)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": f"no route {key}"})
        status, body, error = self.routes[key]
        if error is not None:
            raise error(f"{request.method} {request.url.path} failed", request=request)
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def settings():
    return Settings(SUPABASE_URL="http://backend.test", SUPABASE_ANON_KEY="anon-key")


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def client(settings, fake_backend):
    return BackendClient(settings, transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def session():
    return AuthSession(access_token="user-token", user_id="u1", email="user@example.com")
