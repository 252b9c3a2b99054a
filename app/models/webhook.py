# app/models/webhook.py
from typing import Optional, Any, Dict
from datetime import datetime
from pydantic import BaseModel, Field

from .enum import WebhookEvent, DeliveryStatus


class WebhookConfig(BaseModel):
    # String kosong = webhook nonaktif
    borrow_webhook: str = Field(default="", alias="borrowWebhook")
    return_webhook: str = Field(default="", alias="returnWebhook")

    class Config:
        populate_by_name = True

    def url_for(self, event: WebhookEvent) -> str:
        return self.borrow_webhook if event == WebhookEvent.BORROW else self.return_webhook


class WebhookDelivery(BaseModel):
    """Satu entri outbox: payload yang harus dikirim ke URL webhook."""
    id: str
    event: WebhookEvent
    url: str
    payload: Dict[str, Any]
    borrow_id: str = Field(..., alias="borrowId")
    status: DeliveryStatus = DeliveryStatus.PENDING
    attempts: int = 0
    next_attempt_at: datetime = Field(..., alias="nextAttemptAt")
    # Diisi selama satu pengiriman berjalan; pengirim lain melewatinya
    claimed_until: Optional[datetime] = Field(None, alias="claimedUntil")
    last_error: Optional[str] = Field(None, alias="lastError")
    created_at: datetime = Field(..., alias="createdAt")
    delivered_at: Optional[datetime] = Field(None, alias="deliveredAt")

    class Config:
        populate_by_name = True


class WebhookTestResult(BaseModel):
    event: WebhookEvent
    url: str
    success: bool
    detail: str
