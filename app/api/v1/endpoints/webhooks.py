# app/api/v1/endpoints/webhooks.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from app.api.deps import get_notifier, get_store
from app.core.exceptions import ValidationFailedError
from app.core.security import require_admin
from app.core.webhooks import WebhookNotifier, update_webhook_config
from app.db.store import InventoryStore
from app.models.enum import DeliveryStatus, WebhookEvent
from app.models.user import UserAccount
from app.models.webhook import WebhookConfig, WebhookDelivery, WebhookTestResult

router = APIRouter(
    tags=["Webhooks - Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/", response_model=WebhookConfig)
async def read_webhook_config(store: InventoryStore = Depends(get_store)):
    return await store.get_webhook_config()


@router.put("/", response_model=WebhookConfig, summary="Save Webhook URLs")
async def save_webhook_config(
    config_in: WebhookConfig = Body(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    """URL kosong menonaktifkan webhook untuk event tersebut."""
    return await update_webhook_config(store, config_in, current_user.username)


@router.post("/test/{event}", response_model=WebhookTestResult, summary="Send Test Payload")
async def test_webhook(
    event: WebhookEvent = Path(...),
    url: Optional[str] = Query(None, description="Default: URL yang tersimpan untuk event ini"),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    target = url or (await store.get_webhook_config()).url_for(event)
    if not target:
        raise ValidationFailedError(f"URL webhook {event.value} belum diatur.")
    return await notifier.send_test(event, target, current_user.username)


@router.get("/deliveries", response_model=List[WebhookDelivery], summary="Webhook Outbox")
async def read_deliveries(
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    store: InventoryStore = Depends(get_store),
):
    deliveries = await store.get_webhook_deliveries()
    if status_filter is not None:
        deliveries = [d for d in deliveries if d.status == status_filter]
    return sorted(deliveries, key=lambda d: d.created_at, reverse=True)


@router.post("/deliveries/retry", summary="Retry Due Pending Deliveries Now")
async def retry_deliveries(notifier: WebhookNotifier = Depends(get_notifier)):
    return await notifier.retry_pending()
