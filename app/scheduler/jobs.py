# app/scheduler/jobs.py
from datetime import datetime, timezone

from loguru import logger

from app.core.webhooks import WebhookNotifier


async def retry_pending_webhooks(notifier: WebhookNotifier) -> None:
    """Kirim ulang webhook yang masih pending dan sudah jatuh tempo."""
    now_utc = datetime.now(timezone.utc)
    logger.info(f"Running retry_pending_webhooks job at {now_utc}")
    try:
        summary = await notifier.retry_pending(now_utc)
    except Exception:
        # Job berikutnya akan mencoba lagi; scheduler tidak boleh mati
        logger.exception("Webhook retry job failed.")
        return
    logger.info(
        f"Job finished. Processed: {summary['processed']}, Delivered: {summary['delivered']}, "
        f"Still failing: {summary['failed']}"
    )
