# app/core/inventory.py
"""
Inventory engine: peminjaman dan pengembalian asset.

Semua perubahan (record, status asset, log, outbox webhook) ditulis dalam
satu transaksi store. Webhook dikirim setelah commit; gagal kirim tidak
membatalkan peminjaman.
"""
import time
from datetime import date
from typing import Callable, List, Optional

from loguru import logger

from app.core.activity import add_log
from app.core.exceptions import AssetUnavailableError, NotFoundError, ValidationFailedError
from app.core.overdue import actual_duration, days_overdue, due_date, is_overdue
from app.core.webhooks import WebhookNotifier
from app.db.store import InventoryStore, StoreTransaction
from app.models.asset import Asset
from app.models.borrow import BorrowRecord
from app.models.enum import AssetStatus, BorrowStatus, DeliveryStatus
from app.models.webhook import WebhookDelivery

__all__ = [
    "InventoryEngine",
    "due_date",
    "is_overdue",
    "days_overdue",
    "actual_duration",
]


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValidationFailedError(f"{label} wajib diisi.")
    return value.strip()


class InventoryEngine:

    def __init__(
        self,
        store: InventoryStore,
        notifier: WebhookNotifier,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.notifier = notifier
        self.today = today

    # --- Borrow ---
    async def create_loan(
        self,
        borrower_id: str,
        borrower_name: str,
        asset_ids: List[str],
        duration_days: int,
        purpose: str,
        actor: str,
    ) -> BorrowRecord:
        borrower_id = _require_text(borrower_id, "ID pegawai")
        borrower_name = _require_text(borrower_name, "Nama pegawai")
        purpose = _require_text(purpose, "Kebutuhan")
        if duration_days is None or duration_days < 1:
            raise ValidationFailedError("Lama dipinjam minimal 1 hari.")
        # Hilangkan duplikat, urutan dipertahankan
        unique_ids = list(dict.fromkeys(a.strip() for a in (asset_ids or []) if a and a.strip()))
        if not unique_ids:
            raise ValidationFailedError("Pilih minimal satu asset.")

        async def work(tx: StoreTransaction):
            assets = await tx.get_assets()
            by_id = {a.id: a for a in assets}

            missing = [a_id for a_id in unique_ids if a_id not in by_id]
            if missing:
                raise NotFoundError(f"Asset tidak ditemukan: {', '.join(missing)}")
            unavailable = [
                a_id for a_id in unique_ids
                if by_id[a_id].status != AssetStatus.INSTOCK or by_id[a_id].qty <= 0
            ]
            if unavailable:
                names = ", ".join(by_id[a_id].nama for a_id in unavailable)
                raise AssetUnavailableError(f"Asset tidak tersedia untuk dipinjam: {names}", unavailable)

            seq = await self.store.next_sequence("borrow")
            record = BorrowRecord(
                id=f"BRW-{int(time.time() * 1000)}-{seq}",
                id_pegawai=borrower_id,
                nama_pegawai=borrower_name,
                assets=unique_ids,
                lama_dipinjam=duration_days,
                kebutuhan=purpose,
                status=BorrowStatus.DIPINJAM,
                tanggal_pinjam=self.today(),
            )

            updated_assets = [
                a.model_copy(update={"status": AssetStatus.DIPINJAM}) if a.id in unique_ids else a
                for a in assets
            ]
            borrows = await tx.get_borrows()
            borrows.append(record)
            await tx.set_borrows(borrows)
            await tx.set_assets(updated_assets)
            await add_log(
                tx, actor, "Create Borrow",
                f"Created borrow record {record.id} for {record.nama_pegawai} ({record.id_pegawai}) "
                f"with {len(unique_ids)} assets",
            )
            delivery = await self.notifier.enqueue_borrow(tx, record, updated_assets)
            return record, delivery

        record, delivery = await self.store.run_transaction(work)
        logger.info(f"Borrow {record.id} created by {actor} ({len(record.assets)} assets).")
        await self._deliver_after_commit(delivery, actor, "peminjaman")
        return record

    # --- Return ---
    async def find_active_loan(self, borrow_id: str) -> Optional[BorrowRecord]:
        """Case-insensitive lookup of a loan that is still Dipinjam."""
        needle = (borrow_id or "").strip().upper()
        if not needle:
            return None
        for record in await self.store.get_borrows():
            if record.id.upper() == needle and record.status == BorrowStatus.DIPINJAM:
                return record
        return None

    async def return_loan(self, borrow_id: str, actor: str) -> BorrowRecord:
        needle = (borrow_id or "").strip().upper()
        if not needle:
            raise ValidationFailedError("ID peminjaman wajib diisi.")

        async def work(tx: StoreTransaction):
            borrows = await tx.get_borrows()
            idx = next(
                (i for i, b in enumerate(borrows)
                 if b.id.upper() == needle and b.status == BorrowStatus.DIPINJAM),
                None,
            )
            if idx is None:
                raise NotFoundError(f"ID peminjaman '{borrow_id}' tidak ditemukan atau sudah dikembalikan.")

            record = borrows[idx].model_copy(update={
                "status": BorrowStatus.DIKEMBALIKAN,
                "tanggal_kembali": self.today(),
            })
            borrows[idx] = record
            assets = await tx.get_assets()
            updated_assets = [
                a.model_copy(update={"status": AssetStatus.INSTOCK}) if a.id in record.assets else a
                for a in assets
            ]
            await tx.set_borrows(borrows)
            await tx.set_assets(updated_assets)
            await add_log(
                tx, actor, "Process Return",
                f"Processed return for {record.id} - {record.nama_pegawai} ({record.id_pegawai})",
            )
            delivery = await self.notifier.enqueue_return(tx, record, updated_assets)
            return record, delivery

        record, delivery = await self.store.run_transaction(work)
        logger.info(f"Borrow {record.id} returned by {actor}.")
        await self._deliver_after_commit(delivery, actor, "pengembalian")
        return record

    async def _deliver_after_commit(self, delivery: Optional[WebhookDelivery], actor: str, label: str) -> None:
        if delivery is None:
            return
        # Transaksi sudah commit: apa pun yang terjadi di sini tidak boleh menggagalkan peminjaman
        try:
            result = await self.notifier.deliver(delivery.id)
            if result.status == DeliveryStatus.DELIVERED:
                await add_log(self.store, actor, "Webhook Sent",
                              f"Webhook {label} sent for {result.borrow_id} to {result.url}")
            elif result.last_error is not None:
                await add_log(self.store, actor, "Webhook Failed",
                              f"Webhook {label} failed for {result.borrow_id}: {result.last_error}")
            else:
                logger.debug(f"Webhook {label} for {result.borrow_id} is being sent elsewhere.")
        except Exception as e:
            logger.opt(exception=e).error(
                f"Webhook {label} for {delivery.borrow_id} not attempted after commit; left for the retry job."
            )

    # --- Queries ---
    async def get_loan(self, borrow_id: str) -> BorrowRecord:
        needle = (borrow_id or "").strip().upper()
        for record in await self.store.get_borrows():
            if record.id.upper() == needle:
                return record
        raise NotFoundError(f"ID peminjaman '{borrow_id}' tidak ditemukan.")

    def detail(self, record: BorrowRecord, assets: List[Asset]) -> BorrowRecord.Detail:
        today = self.today()
        open_loan = record.status == BorrowStatus.DIPINJAM
        return BorrowRecord.Detail(
            record=record,
            asset_details=[a for a in assets if a.id in record.assets],
            due_date=due_date(record.tanggal_pinjam, record.lama_dipinjam),
            is_overdue=open_loan and is_overdue(record.tanggal_pinjam, record.lama_dipinjam, today),
            days_overdue=days_overdue(record.tanggal_pinjam, record.lama_dipinjam, today) if open_loan else 0,
        )

    async def loan_detail(self, borrow_id: str) -> BorrowRecord.Detail:
        record = await self.get_loan(borrow_id)
        return self.detail(record, await self.store.get_assets())

    async def list_loans(
        self,
        status: Optional[BorrowStatus] = None,
        overdue_only: bool = False,
        search: Optional[str] = None,
    ) -> List[BorrowRecord.Detail]:
        """Newest borrow date first; ``search`` cocokkan id, id/nama pegawai."""
        borrows = await self.store.get_borrows()
        assets = await self.store.get_assets()
        if status is not None:
            borrows = [b for b in borrows if b.status == status]
        if search:
            needle = search.lower()
            borrows = [
                b for b in borrows
                if needle in b.id.lower() or needle in b.id_pegawai.lower() or needle in b.nama_pegawai.lower()
            ]
        details = [self.detail(b, assets) for b in borrows]
        if overdue_only:
            details = [d for d in details if d.is_overdue]
        details.sort(key=lambda d: d.record.tanggal_pinjam, reverse=True)
        return details
