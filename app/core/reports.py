# app/core/reports.py
from app.core.inventory import InventoryEngine
from app.models.enum import AssetStatus, BorrowStatus
from app.models.report import ActiveBorrowsReport, InventorySummary


async def inventory_summary(engine: InventoryEngine) -> InventorySummary:
    """Ringkasan dashboard: jumlah asset per status, nilai total, dan status peminjaman."""
    store = engine.store
    assets = await store.get_assets()
    categories = await store.get_categories()
    details = await engine.list_loans()
    active = [d for d in details if d.record.status == BorrowStatus.DIPINJAM]
    return InventorySummary(
        total_assets=len(assets),
        instock_assets=sum(1 for a in assets if a.status == AssetStatus.INSTOCK),
        borrowed_assets=sum(1 for a in assets if a.status == AssetStatus.DIPINJAM),
        total_value=sum(a.nilai * a.qty for a in assets),
        total_categories=len(categories),
        active_borrows=len(active),
        overdue_borrows=sum(1 for d in active if d.is_overdue),
        returned_borrows=len(details) - len(active),
    )


async def active_borrows(engine: InventoryEngine) -> ActiveBorrowsReport:
    # Yang paling lama terlambat di atas, lalu yang paling dekat jatuh tempo
    details = await engine.list_loans(status=BorrowStatus.DIPINJAM)
    details.sort(key=lambda d: (-d.days_overdue, d.due_date))
    return ActiveBorrowsReport(
        total=len(details),
        overdue=sum(1 for d in details if d.is_overdue),
        borrows=details,
    )
