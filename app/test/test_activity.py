"""Activity log filtering, editing and CSV export."""
from datetime import datetime, timezone

import pytest

from app.core import activity
from app.core.exceptions import NotFoundError
from app.models.log import LogEntry


def entry(idx, day, user, action, details):
    return LogEntry(
        id=f"log-{idx}",
        timestamp=datetime(2026, 3, day, 9, idx, tzinfo=timezone.utc),
        user=user,
        action=action,
        details=details,
    )


@pytest.fixture
async def logs(store):
    items = [
        entry(1, 1, "admin", "Login", "User admin logged in as admin"),
        entry(2, 2, "Guest", "Create Borrow", "Created borrow record BRW-1-1 for Budi"),
        entry(3, 3, "user", "Process Return", 'Processed return for BRW-1-1 - "Budi"'),
    ]
    await store.set_logs(items)
    return items


async def test_newest_first(store, logs):
    result = await activity.list_logs(store)
    assert [log.id for log in result] == ["log-3", "log-2", "log-1"]


async def test_filters(store, logs):
    assert [log.id for log in await activity.list_logs(store, search="brw-1-1")] == ["log-3", "log-2"]
    assert [log.id for log in await activity.list_logs(store, search="GUEST")] == ["log-2"]
    assert [log.id for log in await activity.list_logs(store, action="Login")] == ["log-1"]
    assert [log.id for log in await activity.list_logs(store, user="user")] == ["log-3"]
    assert [log.id for log in await activity.list_logs(store, date="2026-03-02")] == ["log-2"]


async def test_add_log_appends(store):
    created = await activity.add_log(store, "admin", "Export", "Data exported to JSON")
    stored = await store.get_logs()
    assert [log.id for log in stored] == [created.id]
    assert created.timestamp.tzinfo is not None


async def test_update_and_delete(store, logs):
    updated = await activity.update_log(store, "log-1", None, "edited")
    assert updated.action == "Login"
    assert updated.details == "edited"

    await activity.delete_log(store, "log-2")
    assert [log.id for log in await store.get_logs()] == ["log-1", "log-3"]
    with pytest.raises(NotFoundError):
        await activity.delete_log(store, "log-2")
    with pytest.raises(NotFoundError):
        await activity.update_log(store, "nope", "x", None)


async def test_clear(store, logs):
    assert await activity.clear_logs(store) == 3
    assert await store.get_logs() == []


def test_csv_quotes_details():
    csv = activity.logs_to_csv([entry(1, 5, "user", "Process Return", 'Return "Budi", 2 assets')])
    lines = csv.split("\n")
    assert lines[0] == "Timestamp,User,Action,Details"
    assert lines[1] == '2026-03-05T09:01:00+00:00,user,Process Return,"Return ""Budi"", 2 assets"'
