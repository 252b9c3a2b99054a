"""
Pytest configuration and fixtures: in-memory store, engine with a fixed
calendar, webhook receiver stub and an API client.
"""
import json
import os

# Harus diset sebelum modul app diimpor (config dibaca saat import)
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_inventory_tracker")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"

from datetime import date, datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.inventory import InventoryEngine
from app.core.webhooks import WebhookNotifier
from app.db.backend import MemoryBackend
from app.db.store import InventoryStore
from app.models.asset import Asset
from app.models.category import Category

TODAY = date(2026, 3, 10)


class WebhookReceiver:
    """Stub endpoint for httpx.MockTransport; records every POST it gets."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            raise self.fail_with
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store():
    return InventoryStore(MemoryBackend())


@pytest.fixture
def receiver():
    return WebhookReceiver()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier(store, receiver, clock):
    return WebhookNotifier(
        store,
        timeout=5,
        max_attempts=3,
        retry_base_seconds=60,
        transport=httpx.MockTransport(receiver),
        clock=clock,
    )


@pytest.fixture
def today():
    return {"value": TODAY}


@pytest.fixture
def engine(store, notifier, today):
    return InventoryEngine(store, notifier, today=lambda: today["value"])


async def seed_assets(store: InventoryStore, count: int = 3, kategori: str = "Laptop"):
    await store.set_categories([Category(id="cat-1", nama=kategori)])
    assets = [
        Asset(id=f"a{i}", nama=f"Asset {i}", sku=f"SKU-00000{i}", kategori=kategori, nilai=1000.0 * i, qty=1)
        for i in range(1, count + 1)
    ]
    await store.set_assets(assets)
    return assets


@pytest.fixture
def seeded(store):
    async def _seed(count: int = 3, kategori: str = "Laptop"):
        return await seed_assets(store, count=count, kategori=kategori)
    return _seed


# --- API ---
@pytest.fixture
def client(receiver):
    from app.main import app

    with TestClient(app) as test_client:
        # Ganti notifier bawaan agar webhook tidak keluar ke jaringan
        store = app.state.store
        notifier = WebhookNotifier(store, transport=httpx.MockTransport(receiver))
        app.state.notifier = notifier
        app.state.engine = InventoryEngine(store, notifier)
        yield test_client


def login(client, username="admin", password="admin"):
    response = client.post("/api/v1/auth/token", data={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client)


@pytest.fixture
def user_headers(client):
    return login(client, "user", "user")
