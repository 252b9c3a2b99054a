"""Webhook payloads, outbox delivery and retry with backoff."""
import asyncio
from datetime import date, timedelta

import httpx
import pytest

from app.core.exceptions import ValidationFailedError
from app.core.inventory import InventoryEngine
from app.core.webhooks import WebhookNotifier, build_test_payload, is_valid_webhook_url, update_webhook_config
from app.models.borrow import BorrowRecord
from app.models.enum import AssetStatus, BorrowStatus, DeliveryStatus, WebhookEvent
from app.models.webhook import WebhookConfig

BORROW_URL = "https://hooks.example.com/borrow"
RETURN_URL = "https://hooks.example.com/return"
# Lolos HttpUrl pydantic tapi ditolak httpx (IDNA tidak valid)
BROKEN_URL = "http://münchen..de/hook"


@pytest.fixture
async def configured(store, seeded):
    await seeded()
    await store.set_webhook_config(WebhookConfig(borrow_webhook=BORROW_URL, return_webhook=RETURN_URL))


async def borrow(engine, asset_ids, duration=7):
    return await engine.create_loan("EMP001", "Budi", asset_ids, duration, "Presentasi", "user")


async def test_no_url_means_no_request(engine, store, seeded, receiver):
    await seeded()
    await borrow(engine, ["a1"])
    assert receiver.requests == []
    assert await store.get_webhook_deliveries() == []
    assert "Webhook Sent" not in [log.action for log in await store.get_logs()]


async def test_borrow_payload(engine, store, receiver, configured):
    record = await borrow(engine, ["a1", "a2"])

    assert len(receiver.requests) == 1
    request = receiver.requests[0]
    assert str(request.url) == BORROW_URL
    assert request.headers["content-type"] == "application/json"

    payload = receiver.payloads[0]
    assert payload["type"] == "borrow"
    assert payload["timestamp"].endswith("Z")
    assert payload["borrowRecord"]["id"] == record.id
    assert payload["borrowRecord"]["idPegawai"] == "EMP001"
    assert payload["borrowRecord"]["status"] == "Dipinjam"
    assert [a["id"] for a in payload["assets"]] == ["a1", "a2"]
    assert all(a["status"] == "Dipinjam" for a in payload["assets"])
    assert payload["summary"] == {
        "borrowId": record.id,
        "employeeId": "EMP001",
        "employeeName": "Budi",
        "totalAssets": 2,
        "duration": 7,
        "purpose": "Presentasi",
        "borrowDate": "2026-03-10",
    }
    actions = [log.action for log in await store.get_logs()]
    assert actions == ["Create Borrow", "Webhook Sent"]


async def test_return_payload(engine, receiver, configured, today):
    record = await borrow(engine, ["a1"], duration=3)
    today["value"] = date(2026, 3, 12)
    await engine.return_loan(record.id, actor="admin")

    payload = receiver.payloads[-1]
    assert str(receiver.requests[-1].url) == RETURN_URL
    assert payload["type"] == "return"
    assert payload["borrowRecord"]["status"] == "Dikembalikan"
    assert payload["assets"][0]["status"] == "Instock"
    assert payload["summary"]["returnDate"] == "2026-03-12"
    assert payload["summary"]["actualDuration"] == 2
    assert payload["summary"]["duration"] == 3


async def test_failed_webhook_keeps_loan(engine, store, receiver, configured):
    receiver.status_code = 500
    record = await borrow(engine, ["a1"])

    borrows = await store.get_borrows()
    assert [b.id for b in borrows] == [record.id]
    assert borrows[0].status == BorrowStatus.DIPINJAM
    assert [log.action for log in await store.get_logs()] == ["Create Borrow", "Webhook Failed"]

    deliveries = await store.get_webhook_deliveries()
    assert len(deliveries) == 1
    assert deliveries[0].status == DeliveryStatus.PENDING
    assert deliveries[0].attempts == 1
    assert "500" in deliveries[0].last_error


async def test_transport_error_is_a_failure(engine, store, receiver, configured):
    receiver.fail_with = httpx.ConnectError("connection refused")
    await borrow(engine, ["a1"])
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.PENDING
    assert "ConnectError" in delivery.last_error


async def test_retry_pending_uses_backoff(engine, store, receiver, notifier, clock, configured):
    receiver.status_code = 503
    await borrow(engine, ["a1"])
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.next_attempt_at == clock.now + timedelta(seconds=60)

    # Belum jatuh tempo
    summary = await notifier.retry_pending(clock.now + timedelta(seconds=30))
    assert summary["processed"] == 0

    receiver.status_code = 200
    clock.now = clock.now + timedelta(seconds=61)
    summary = await notifier.retry_pending()
    assert summary == {"processed": 1, "delivered": 1, "failed": 0}

    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.attempts == 2
    sent = [log for log in await store.get_logs() if log.action == "Webhook Sent"]
    assert sent and sent[-1].user == "system"


async def test_delivery_fails_after_max_attempts(engine, store, receiver, notifier, clock, configured):
    receiver.status_code = 500
    await borrow(engine, ["a1"])

    clock.now += timedelta(seconds=60)
    await notifier.retry_pending()
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.attempts == 2
    # Backoff kedua: 60 * 2
    assert delivery.next_attempt_at == clock.now + timedelta(seconds=120)

    clock.now += timedelta(seconds=120)
    await notifier.retry_pending()
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.FAILED
    assert delivery.attempts == 3

    clock.now += timedelta(days=1)
    assert (await notifier.retry_pending())["processed"] == 0


async def test_send_test_payload(notifier, store, receiver):
    result = await notifier.send_test(WebhookEvent.RETURN, RETURN_URL, "admin")
    assert result.success
    payload = receiver.payloads[0]
    assert payload["type"] == "test_return"
    assert payload["testData"]["borrowId"] == "BRW-TEST123"
    assert payload["testData"]["actualDuration"] == 7
    assert [log.action for log in await store.get_logs()] == ["Test Webhook"]


async def test_send_test_failure_is_logged(notifier, store, receiver):
    receiver.status_code = 404
    result = await notifier.send_test(WebhookEvent.BORROW, BORROW_URL, "admin")
    assert not result.success
    assert "404" in result.detail
    assert [log.action for log in await store.get_logs()] == ["Test Webhook Failed"]


def test_borrow_test_payload(clock):
    payload = build_test_payload(WebhookEvent.BORROW, clock.now)
    assert payload["type"] == "test_borrow"
    assert payload["testData"]["employeeId"] == "EMP001"
    assert payload["testData"]["totalAssets"] == 2
    assert payload["testData"]["borrowDate"] == "2026-03-10"


@pytest.mark.parametrize(
    "url,valid",
    [
        ("https://hooks.example.com/x", True),
        ("http://localhost:8080/hook", True),
        ("ftp://example.com", False),
        ("not a url", False),
        (BROKEN_URL, False),
    ],
)
def test_webhook_url_validation(url, valid):
    assert is_valid_webhook_url(url) is valid


async def test_update_config(store):
    saved = await update_webhook_config(store, WebhookConfig(borrow_webhook=f"  {BORROW_URL} "), "admin")
    assert saved.borrow_webhook == BORROW_URL
    assert saved.return_webhook == ""
    logs = await store.get_logs()
    assert logs[0].action == "Update Webhook"
    assert "Borrow: Set, Return: Empty" in logs[0].details

    with pytest.raises(ValidationFailedError):
        await update_webhook_config(store, WebhookConfig(return_webhook="nope"), "admin")


async def test_unparseable_url_rejected_on_save(store):
    with pytest.raises(ValidationFailedError):
        await update_webhook_config(store, WebhookConfig(borrow_webhook=BROKEN_URL), "admin")
    assert (await store.get_webhook_config()).borrow_webhook == ""


async def test_broken_stored_url_is_a_failed_attempt(engine, store, receiver, notifier, clock, seeded):
    await seeded()
    # Konfigurasi lama yang tersimpan sebelum validasi httpx ada
    await store.set_webhook_config(WebhookConfig(borrow_webhook=BROKEN_URL, return_webhook=RETURN_URL))

    record = await borrow(engine, ["a1"])
    assets = {a.id: a for a in await store.get_assets()}
    assert assets["a1"].status == AssetStatus.DIPINJAM
    assert [log.action for log in await store.get_logs()] == ["Create Borrow", "Webhook Failed"]
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.PENDING
    assert delivery.attempts == 1
    assert delivery.claimed_until is None
    assert "InvalidURL" in delivery.last_error

    receiver.status_code = 500
    await engine.return_loan(record.id, actor="admin")
    receiver.status_code = 200

    # Entri yang rusak tidak menahan entri di belakangnya
    clock.now += timedelta(seconds=61)
    summary = await notifier.retry_pending()
    assert summary == {"processed": 2, "delivered": 1, "failed": 1}
    by_event = {d.event: d for d in await store.get_webhook_deliveries()}
    assert by_event[WebhookEvent.RETURN].status == DeliveryStatus.DELIVERED
    assert by_event[WebhookEvent.BORROW].status == DeliveryStatus.PENDING
    assert by_event[WebhookEvent.BORROW].attempts == 2


async def test_in_flight_delivery_is_sent_once(store, seeded, clock, today):
    await seeded()
    await store.set_webhook_config(WebhookConfig(borrow_webhook=BORROW_URL))
    posts = []
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_endpoint(request):
        posts.append(request)
        started.set()
        await release.wait()
        return httpx.Response(200)

    notifier = WebhookNotifier(
        store, timeout=5, max_attempts=3, retry_base_seconds=60,
        transport=httpx.MockTransport(slow_endpoint), clock=clock,
    )
    engine = InventoryEngine(store, notifier, today=lambda: today["value"])

    loan = asyncio.create_task(borrow(engine, ["a1"]))
    await started.wait()
    # Scheduler jalan saat POST pertama masih menunggu
    summary = await notifier.retry_pending()
    assert summary == {"processed": 0, "delivered": 0, "failed": 0}
    release.set()
    await loan

    assert len(posts) == 1
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.attempts == 1
    assert delivery.claimed_until is None

    again = await notifier.deliver(delivery.id)
    assert again.status == DeliveryStatus.DELIVERED
    assert len(posts) == 1


async def test_late_attempt_result_does_not_touch_finished_delivery(engine, store, notifier, configured):
    await borrow(engine, ["a1"])
    delivery = (await store.get_webhook_deliveries())[0]
    assert delivery.status == DeliveryStatus.DELIVERED

    result = await notifier._record_attempt(delivery.id, "HTTP 500: late")
    assert result.status == DeliveryStatus.DELIVERED
    stored = (await store.get_webhook_deliveries())[0]
    assert stored.attempts == 1
    assert stored.last_error is None


async def test_outbox_keeps_only_recent_finished_entries(store, seeded, receiver, clock, today):
    await seeded()
    await store.set_webhook_config(WebhookConfig(borrow_webhook=BORROW_URL, return_webhook=RETURN_URL))
    notifier = WebhookNotifier(
        store, timeout=5, max_attempts=3, retry_base_seconds=60,
        transport=httpx.MockTransport(receiver), clock=clock, keep_finished=2,
    )
    engine = InventoryEngine(store, notifier, today=lambda: today["value"])

    for _ in range(3):
        record = await borrow(engine, ["a1"])
        clock.now += timedelta(minutes=1)
        await engine.return_loan(record.id, actor="admin")
        clock.now += timedelta(minutes=1)
    assert len(receiver.requests) == 6

    deliveries = await store.get_webhook_deliveries()
    assert [(d.event, d.borrow_id) for d in deliveries] == [
        (WebhookEvent.BORROW, record.id),
        (WebhookEvent.RETURN, record.id),
    ]

    # Entri pending tidak pernah dibuang
    receiver.status_code = 500
    pending = await borrow(engine, ["a2"])
    deliveries = await store.get_webhook_deliveries()
    assert len(deliveries) == 3
    assert [d.borrow_id for d in deliveries if d.status == DeliveryStatus.PENDING] == [pending.id]


async def test_notify_borrow_and_return(notifier, store, receiver, seeded):
    assets = await seeded()
    await store.set_webhook_config(WebhookConfig(borrow_webhook=BORROW_URL))
    record = BorrowRecord(
        id="BRW-1", id_pegawai="EMP002", nama_pegawai="Sari", assets=["a2"],
        lama_dipinjam=2, kebutuhan="Audit", tanggal_pinjam=date(2026, 3, 9),
    )

    delivery = await notifier.notify_borrow(record, assets)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.borrow_id == "BRW-1"
    assert receiver.payloads[0]["type"] == "borrow"
    assert [a["id"] for a in receiver.payloads[0]["assets"]] == ["a2"]

    # URL pengembalian kosong: tidak ada entri outbox, tidak ada request
    assert await notifier.notify_return(record, assets) is None
    assert len(receiver.requests) == 1
    assert len(await store.get_webhook_deliveries()) == 1


async def test_send_test_rejects_invalid_url(notifier, store, receiver):
    with pytest.raises(ValidationFailedError):
        await notifier.send_test(WebhookEvent.BORROW, BROKEN_URL, "admin")
    with pytest.raises(ValidationFailedError):
        await notifier.send_test(WebhookEvent.RETURN, "ftp://example.com/hook", "admin")
    assert receiver.requests == []
    assert await store.get_logs() == []
