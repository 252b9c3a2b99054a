# app/api/deps.py
from fastapi import Request

from app.core.inventory import InventoryEngine
from app.core.webhooks import WebhookNotifier
from app.db.store import InventoryStore


# Komponen dibuat sekali di lifespan (main.py) dan disimpan di app.state
def get_store(request: Request) -> InventoryStore:
    return request.app.state.store


def get_engine(request: Request) -> InventoryEngine:
    return request.app.state.engine


def get_notifier(request: Request) -> WebhookNotifier:
    return request.app.state.notifier
