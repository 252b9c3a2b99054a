# app/core/webhooks.py
"""
Outbound webhook notifications for borrow/return events.

Deliveries go through an outbox slot: the engine writes a pending record in
the same transaction as the domain change, then asks the notifier to send
it. Failed sends stay pending and are retried with exponential backoff by
the scheduler job until WEBHOOK_MAX_ATTEMPTS is reached. A sender claims an entry
before posting it, so one delivery is never in flight twice.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.core import config
from app.core.activity import add_log, SYSTEM_USER
from app.core.exceptions import InventoryError, NotFoundError, ValidationFailedError, WebhookDeliveryError
from app.core.overdue import actual_duration
from app.db.store import InventoryStore, SlotAccessors, StoreTransaction, new_id
from app.models.asset import Asset
from app.models.borrow import BorrowRecord
from app.models.enum import DeliveryStatus, WebhookEvent
from app.models.webhook import WebhookConfig, WebhookDelivery, WebhookTestResult

_http_url = TypeAdapter(HttpUrl)
CLAIM_GRACE_SECONDS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def is_valid_webhook_url(url: str) -> bool:
    try:
        _http_url.validate_python(url)
        # httpx lebih ketat untuk host IDNA daripada pydantic
        httpx.URL(url)
    except (ValidationError, httpx.InvalidURL):
        return False
    return True


def _finished_key(delivery: WebhookDelivery) -> datetime:
    return delivery.delivered_at or delivery.created_at


def prune_deliveries(deliveries: List[WebhookDelivery], keep_finished: int) -> List[WebhookDelivery]:
    """Keep every pending entry and only the newest ``keep_finished`` delivered/failed ones."""
    finished = [d for d in deliveries if d.status != DeliveryStatus.PENDING]
    if len(finished) <= keep_finished:
        return deliveries
    finished.sort(key=_finished_key, reverse=True)
    kept = {d.id for d in finished[:keep_finished]}
    return [d for d in deliveries if d.status == DeliveryStatus.PENDING or d.id in kept]


def _involved_assets(record: BorrowRecord, assets: List[Asset]) -> List[Dict[str, Any]]:
    return [a.model_dump(mode="json", by_alias=True) for a in assets if a.id in record.assets]


def build_borrow_payload(record: BorrowRecord, assets: List[Asset], timestamp: datetime) -> Dict[str, Any]:
    return {
        "type": WebhookEvent.BORROW.value,
        "timestamp": _iso(timestamp),
        "borrowRecord": record.model_dump(mode="json", by_alias=True),
        "assets": _involved_assets(record, assets),
        "summary": {
            "borrowId": record.id,
            "employeeId": record.id_pegawai,
            "employeeName": record.nama_pegawai,
            "totalAssets": len(record.assets),
            "duration": record.lama_dipinjam,
            "purpose": record.kebutuhan,
            "borrowDate": record.tanggal_pinjam.isoformat(),
        },
    }


def build_return_payload(record: BorrowRecord, assets: List[Asset], timestamp: datetime) -> Dict[str, Any]:
    return {
        "type": WebhookEvent.RETURN.value,
        "timestamp": _iso(timestamp),
        "borrowRecord": record.model_dump(mode="json", by_alias=True),
        "assets": _involved_assets(record, assets),
        "summary": {
            "borrowId": record.id,
            "employeeId": record.id_pegawai,
            "employeeName": record.nama_pegawai,
            "totalAssets": len(record.assets),
            "borrowDate": record.tanggal_pinjam.isoformat(),
            "returnDate": record.tanggal_kembali.isoformat() if record.tanggal_kembali else None,
            "duration": record.lama_dipinjam,
            "actualDuration": actual_duration(record),
        },
    }


def build_test_payload(event: WebhookEvent, now: datetime) -> Dict[str, Any]:
    today = now.date()
    if event == WebhookEvent.BORROW:
        test_data = {
            "borrowId": "BRW-TEST123",
            "employeeId": "EMP001",
            "employeeName": "Test Employee",
            "totalAssets": 2,
            "duration": 7,
            "purpose": "Testing webhook integration",
            "borrowDate": today.isoformat(),
        }
        label = "peminjaman"
    else:
        test_data = {
            "borrowId": "BRW-TEST123",
            "employeeId": "EMP001",
            "employeeName": "Test Employee",
            "totalAssets": 2,
            "borrowDate": (today - timedelta(days=7)).isoformat(),
            "returnDate": today.isoformat(),
            "duration": 7,
            "actualDuration": 7,
        }
        label = "pengembalian"
    return {
        "type": f"test_{event.value}",
        "timestamp": _iso(now),
        "message": f"Test webhook untuk {label} dari Inventory Tracker",
        "testData": test_data,
    }


_PAYLOAD_BUILDERS = {
    WebhookEvent.BORROW: build_borrow_payload,
    WebhookEvent.RETURN: build_return_payload,
}


class WebhookNotifier:

    def __init__(
        self,
        store: InventoryStore,
        timeout: float = config.WEBHOOK_TIMEOUT_SECONDS,
        max_attempts: int = config.WEBHOOK_MAX_ATTEMPTS,
        retry_base_seconds: int = config.WEBHOOK_RETRY_BASE_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
        keep_finished: int = config.WEBHOOK_OUTBOX_KEEP_FINISHED,
    ):
        self.store = store
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_base_seconds = retry_base_seconds
        self.keep_finished = max(0, keep_finished)
        self._transport = transport
        self._clock = clock

    @property
    def claim_period(self) -> timedelta:
        # Lebih lama dari timeout request supaya klaim tidak habis saat POST masih berjalan
        return timedelta(seconds=self.timeout + CLAIM_GRACE_SECONDS)

    # --- HTTP ---
    async def send(self, url: str, payload: Dict[str, Any]) -> None:
        """POST JSON; raises WebhookDeliveryError on any failure to get a 2xx response."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers={"Content-Type": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise WebhookDeliveryError(f"{type(e).__name__}: {e}") from e
        except Exception as e:
            # Error di luar httpx tetap dihitung sebagai attempt gagal
            logger.opt(exception=e).error(f"Unexpected error posting webhook to {url}")
            raise WebhookDeliveryError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise WebhookDeliveryError(f"HTTP {response.status_code}: {response.reason_phrase}")

    # --- Outbox ---
    async def enqueue(
        self, tx: SlotAccessors, event: WebhookEvent, record: BorrowRecord, assets: List[Asset]
    ) -> Optional[WebhookDelivery]:
        """Write a pending delivery; None when no URL is configured for the event."""
        webhook_config = await tx.get_webhook_config()
        url = webhook_config.url_for(event).strip()
        if not url:
            return None
        now = self._clock()
        delivery = WebhookDelivery(
            id=new_id(),
            event=event,
            url=url,
            payload=_PAYLOAD_BUILDERS[event](record, assets, now),
            borrow_id=record.id,
            next_attempt_at=now,
            created_at=now,
        )
        deliveries = await tx.get_webhook_deliveries()
        deliveries.append(delivery)
        await tx.set_webhook_deliveries(deliveries)
        return delivery

    async def enqueue_borrow(self, tx: StoreTransaction, record: BorrowRecord, assets: List[Asset]):
        return await self.enqueue(tx, WebhookEvent.BORROW, record, assets)

    async def enqueue_return(self, tx: StoreTransaction, record: BorrowRecord, assets: List[Asset]):
        return await self.enqueue(tx, WebhookEvent.RETURN, record, assets)

    def _backoff(self, attempts: int) -> timedelta:
        return timedelta(seconds=self.retry_base_seconds * 2 ** max(attempts - 1, 0))

    @staticmethod
    def _is_claimed(delivery: WebhookDelivery, now: datetime) -> bool:
        return delivery.claimed_until is not None and delivery.claimed_until > now

    async def _claim(self, delivery_id: str) -> Optional[WebhookDelivery]:
        """Tandai delivery sedang dikirim. None jika sudah selesai atau sedang dikirim pihak lain."""
        now = self._clock()

        async def work(tx: StoreTransaction) -> Optional[WebhookDelivery]:
            deliveries = await tx.get_webhook_deliveries()
            for idx, item in enumerate(deliveries):
                if item.id != delivery_id:
                    continue
                if item.status != DeliveryStatus.PENDING or self._is_claimed(item, now):
                    return None
                claimed = item.model_copy(update={"claimed_until": now + self.claim_period})
                deliveries[idx] = claimed
                await tx.set_webhook_deliveries(deliveries)
                return claimed
            raise NotFoundError(f"Webhook delivery '{delivery_id}' tidak ditemukan.")

        return await self.store.run_transaction(work)

    async def _record_attempt(self, delivery_id: str, error: Optional[str]) -> WebhookDelivery:
        now = self._clock()

        async def work(tx: StoreTransaction) -> WebhookDelivery:
            deliveries = await tx.get_webhook_deliveries()
            for idx, item in enumerate(deliveries):
                if item.id != delivery_id:
                    continue
                if item.status != DeliveryStatus.PENDING:
                    return item
                attempts = item.attempts + 1
                if error is None:
                    updated = item.model_copy(update={
                        "attempts": attempts, "status": DeliveryStatus.DELIVERED,
                        "delivered_at": now, "last_error": None, "claimed_until": None,
                    })
                elif attempts >= self.max_attempts:
                    updated = item.model_copy(update={
                        "attempts": attempts, "status": DeliveryStatus.FAILED,
                        "last_error": error, "claimed_until": None,
                    })
                else:
                    updated = item.model_copy(update={
                        "attempts": attempts, "last_error": error, "claimed_until": None,
                        "next_attempt_at": now + self._backoff(attempts),
                    })
                deliveries[idx] = updated
                await tx.set_webhook_deliveries(prune_deliveries(deliveries, self.keep_finished))
                return updated
            raise NotFoundError(f"Webhook delivery '{delivery_id}' tidak ditemukan.")

        return await self.store.run_transaction(work)

    async def _attempt(self, delivery_id: str) -> Optional[WebhookDelivery]:
        delivery = await self._claim(delivery_id)
        if delivery is None:
            return None

        error: Optional[str] = None
        try:
            await self.send(delivery.url, delivery.payload)
            logger.info(f"Webhook {delivery.event.value} for {delivery.borrow_id} delivered to {delivery.url}")
        except WebhookDeliveryError as e:
            error = str(e)
            logger.warning(f"Webhook {delivery.event.value} for {delivery.borrow_id} failed: {error}")
        return await self._record_attempt(delivery.id, error)

    async def deliver(self, delivery_id: str) -> WebhookDelivery:
        """
        One send attempt for a pending delivery; returns the updated outbox record.
        A delivery that is already finished, or currently being sent by another
        caller, is returned unchanged without a second POST.
        """
        updated = await self._attempt(delivery_id)
        if updated is not None:
            return updated
        deliveries = await self.store.get_webhook_deliveries()
        current = next((d for d in deliveries if d.id == delivery_id), None)
        if current is None:
            raise NotFoundError(f"Webhook delivery '{delivery_id}' tidak ditemukan.")
        return current

    async def _notify(self, event: WebhookEvent, record: BorrowRecord, assets: List[Asset]) -> Optional[WebhookDelivery]:
        async def work(tx: StoreTransaction):
            return await self.enqueue(tx, event, record, assets)

        delivery = await self.store.run_transaction(work)
        if delivery is None:
            logger.debug(f"No {event.value} webhook configured; skipping {record.id}.")
            return None
        return await self.deliver(delivery.id)

    async def notify_borrow(self, record: BorrowRecord, assets: List[Asset]) -> Optional[WebhookDelivery]:
        return await self._notify(WebhookEvent.BORROW, record, assets)

    async def notify_return(self, record: BorrowRecord, assets: List[Asset]) -> Optional[WebhookDelivery]:
        return await self._notify(WebhookEvent.RETURN, record, assets)

    async def retry_pending(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Deliver every pending record whose next attempt is due."""
        now = now or self._clock()
        due = [
            d for d in await self.store.get_webhook_deliveries()
            if d.status == DeliveryStatus.PENDING and d.next_attempt_at <= now and not self._is_claimed(d, now)
        ]
        summary = {"processed": 0, "delivered": 0, "failed": 0}
        for delivery in due:
            try:
                updated = await self._attempt(delivery.id)
            except InventoryError as e:
                # Satu entri bermasalah tidak boleh menahan entri di belakangnya
                logger.warning(f"Skipping webhook delivery {delivery.id}: {e.detail}")
                continue
            if updated is None:
                continue
            summary["processed"] += 1
            if updated.status == DeliveryStatus.DELIVERED:
                summary["delivered"] += 1
                await add_log(self.store, SYSTEM_USER, "Webhook Sent",
                              f"Retried {updated.event.value} webhook sent for {updated.borrow_id}")
            else:
                summary["failed"] += 1
                await add_log(self.store, SYSTEM_USER, "Webhook Failed",
                              f"Retry {updated.attempts}/{self.max_attempts} of {updated.event.value} webhook "
                              f"failed for {updated.borrow_id}: {updated.last_error}")
        if summary["processed"]:
            logger.info(f"Webhook retry finished: {summary}")
        return summary

    async def send_test(self, event: WebhookEvent, url: str, actor: str) -> WebhookTestResult:
        url = url.strip()
        if not url:
            raise ValidationFailedError("URL webhook tidak boleh kosong.")
        if not is_valid_webhook_url(url):
            raise ValidationFailedError(f"URL webhook {event.value} tidak valid: {url}")
        try:
            await self.send(url, build_test_payload(event, self._clock()))
        except WebhookDeliveryError as e:
            await add_log(self.store, actor, "Test Webhook Failed", f"Failed to test {event.value} webhook: {url} - {e}")
            return WebhookTestResult(event=event, url=url, success=False, detail=str(e))
        await add_log(self.store, actor, "Test Webhook", f"Successfully tested {event.value} webhook: {url}")
        return WebhookTestResult(event=event, url=url, success=True, detail="OK")


async def update_webhook_config(store: InventoryStore, webhook_config: WebhookConfig, actor: str) -> WebhookConfig:
    cleaned = WebhookConfig(
        borrow_webhook=webhook_config.borrow_webhook.strip(),
        return_webhook=webhook_config.return_webhook.strip(),
    )
    for label, url in (("peminjaman", cleaned.borrow_webhook), ("pengembalian", cleaned.return_webhook)):
        if url and not is_valid_webhook_url(url):
            raise ValidationFailedError(f"URL webhook {label} tidak valid: {url}")
    await store.set_webhook_config(cleaned)
    await add_log(
        store, actor, "Update Webhook",
        f"Updated webhook configuration - Borrow: {'Set' if cleaned.borrow_webhook else 'Empty'}, "
        f"Return: {'Set' if cleaned.return_webhook else 'Empty'}",
    )
    return cleaned
