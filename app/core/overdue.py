# app/core/overdue.py
from datetime import date, timedelta

from app.models.borrow import BorrowRecord


def due_date(borrow_date: date, duration_days: int) -> date:
    return borrow_date + timedelta(days=duration_days)


def is_overdue(borrow_date: date, duration_days: int, today: date) -> bool:
    """
    Terlambat jika hari ini sudah melewati tanggal pinjam + durasi (hari kalender).
    Perbandingan per tanggal, bukan per jam: hari jatuh tempo itu sendiri belum
    dihitung terlambat, baru mulai besoknya.
    """
    return today > due_date(borrow_date, duration_days)


def days_overdue(borrow_date: date, duration_days: int, today: date) -> int:
    return max((today - due_date(borrow_date, duration_days)).days, 0)


def actual_duration(record: BorrowRecord) -> int:
    """Whole days between borrow and return; 0 while the loan is still open."""
    if record.tanggal_kembali is None:
        return 0
    return (record.tanggal_kembali - record.tanggal_pinjam).days
