# app/api/v1/endpoints/logs.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from fastapi.responses import Response
from loguru import logger

from app.api.deps import get_store
from app.core import activity
from app.core.security import require_admin
from app.db.store import InventoryStore
from app.models.log import LogEntry
from app.models.user import UserAccount

router = APIRouter(
    tags=["Activity Log - Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/", response_model=List[LogEntry], summary="Activity History (newest first)")
async def read_logs(
    search: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    user: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="Prefix tanggal YYYY-MM-DD"),
    store: InventoryStore = Depends(get_store),
):
    return await activity.list_logs(store, search=search, action=action, user=user, date=date)


@router.get("/export", summary="Export Filtered Logs as CSV")
async def export_logs(
    search: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    user: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    logs = await activity.list_logs(store, search=search, action=action, user=user, date=date)
    return Response(
        content=activity.logs_to_csv(logs),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="activity-logs.csv"'},
    )


@router.put("/{log_id}", response_model=LogEntry)
async def update_log(
    log_id: str = Path(...),
    log_in: LogEntry.Update = Body(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    logger.info(f"Admin '{current_user.username}' editing log {log_id}.")
    return await activity.update_log(store, log_id, log_in.action, log_in.details)


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_log(log_id: str = Path(...), store: InventoryStore = Depends(get_store)):
    await activity.delete_log(store, log_id)
    return None


@router.delete("/", summary="Clear All Logs")
async def clear_logs(
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    logger.warning(f"Admin '{current_user.username}' clearing the activity log.")
    removed = await activity.clear_logs(store)
    return {"deleted": removed}
