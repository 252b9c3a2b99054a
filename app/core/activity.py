# app/core/activity.py
"""Activity (audit) log: append, filter, edit and CSV export."""
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from app.core.exceptions import NotFoundError
from app.db.store import SlotAccessors, new_id
from app.models.log import LogEntry

GUEST_USER = "Guest"
SYSTEM_USER = "system"

CSV_HEADER = ("Timestamp", "User", "Action", "Details")


async def add_log(store: SlotAccessors, user: str, action: str, details: str) -> LogEntry:
    """Append one entry. ``store`` boleh berupa store langsung atau transaksi."""
    entry = LogEntry(
        id=new_id(),
        timestamp=datetime.now(timezone.utc),
        user=user,
        action=action,
        details=details,
    )
    logs = await store.get_logs()
    logs.append(entry)
    await store.set_logs(logs)
    logger.info(f"[activity] {user} | {action} | {details}")
    return entry


def filter_logs(
    logs: List[LogEntry],
    search: Optional[str] = None,
    action: Optional[str] = None,
    user: Optional[str] = None,
    date: Optional[str] = None,
) -> List[LogEntry]:
    """Newest first. ``date`` adalah prefix ISO (YYYY-MM-DD)."""
    result = sorted(logs, key=lambda log: log.timestamp, reverse=True)
    if search:
        needle = search.lower()
        result = [
            log for log in result
            if needle in log.details.lower() or needle in log.action.lower() or needle in log.user.lower()
        ]
    if action:
        result = [log for log in result if log.action == action]
    if user:
        result = [log for log in result if log.user == user]
    if date:
        result = [log for log in result if log.timestamp.isoformat().startswith(date)]
    return result


async def list_logs(store: SlotAccessors, **filters) -> List[LogEntry]:
    return filter_logs(await store.get_logs(), **filters)


async def update_log(store: SlotAccessors, log_id: str, action: Optional[str], details: Optional[str]) -> LogEntry:
    logs = await store.get_logs()
    for idx, log in enumerate(logs):
        if log.id == log_id:
            updated = log.model_copy(update={
                "action": action if action is not None else log.action,
                "details": details if details is not None else log.details,
            })
            logs[idx] = updated
            await store.set_logs(logs)
            return updated
    raise NotFoundError(f"Log dengan ID '{log_id}' tidak ditemukan.")


async def delete_log(store: SlotAccessors, log_id: str) -> None:
    logs = await store.get_logs()
    remaining = [log for log in logs if log.id != log_id]
    if len(remaining) == len(logs):
        raise NotFoundError(f"Log dengan ID '{log_id}' tidak ditemukan.")
    await store.set_logs(remaining)


async def clear_logs(store: SlotAccessors) -> int:
    count = len(await store.get_logs())
    await store.set_logs([])
    logger.warning(f"Activity log cleared ({count} entries).")
    return count


def logs_to_csv(logs: List[LogEntry]) -> str:
    """Header Timestamp,User,Action,Details; details selalu dikutip, kutip di dalamnya digandakan."""
    lines = [",".join(CSV_HEADER)]
    for log in logs:
        details = log.details.replace('"', '""')
        lines.append(",".join([log.timestamp.isoformat(), log.user, log.action, f'"{details}"']))
    return "\n".join(lines)
