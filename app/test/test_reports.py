"""Dashboard summary and active borrow report."""
from datetime import date

from app.core import reports


async def test_summary_counts(engine, seeded, today):
    await seeded()
    today["value"] = date(2026, 3, 1)
    late = await engine.create_loan("EMP001", "Budi", ["a1"], 2, "Rapat", "user")
    done = await engine.create_loan("EMP002", "Siti", ["a2"], 2, "Rapat", "user")
    await engine.return_loan(done.id, "user")
    today["value"] = date(2026, 3, 10)

    summary = await reports.inventory_summary(engine)
    assert summary.total_assets == 3
    assert summary.borrowed_assets == 1
    assert summary.instock_assets == 2
    assert summary.total_value == 6000.0
    assert summary.total_categories == 1
    assert summary.active_borrows == 1
    assert summary.overdue_borrows == 1
    assert summary.returned_borrows == 1

    report = await reports.active_borrows(engine)
    assert report.total == 1
    assert report.overdue == 1
    assert report.borrows[0].record.id == late.id
    assert report.borrows[0].days_overdue == 7


async def test_most_overdue_first(engine, seeded, today):
    await seeded()
    today["value"] = date(2026, 3, 5)
    recent = await engine.create_loan("EMP001", "Budi", ["a1"], 1, "Rapat", "user")
    today["value"] = date(2026, 3, 1)
    older = await engine.create_loan("EMP002", "Siti", ["a2"], 1, "Rapat", "user")
    today["value"] = date(2026, 3, 10)

    report = await reports.active_borrows(engine)
    assert [d.record.id for d in report.borrows] == [older.id, recent.id]
