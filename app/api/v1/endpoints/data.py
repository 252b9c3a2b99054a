# app/api/v1/endpoints/data.py
from datetime import date

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse, Response

from app.api.deps import get_store
from app.core import transfer
from app.core.security import require_admin
from app.db.store import InventoryStore
from app.models.user import UserAccount

router = APIRouter(
    tags=["Data Export/Import - Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/export", summary="Export All Data (JSON)")
async def export_data(
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    data = await transfer.export_json(store, actor=current_user.username)
    filename = f"cimbj-data-{date.today().isoformat()}.json"
    return JSONResponse(content=data, headers={"Content-Disposition": f'attachment; filename="{filename}"'})


@router.get("/export/sql", summary="Export All Data (SQL)")
async def export_data_sql(
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    sql = await transfer.export_sql(store, actor=current_user.username)
    filename = f"cimbj-database-{date.today().isoformat()}.sql"
    return Response(
        content=sql,
        media_type="text/sql",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", summary="Import Data (JSON, replaces everything)")
async def import_data(
    file: UploadFile = File(...),
    current_user: UserAccount = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
):
    content = await file.read()
    data = transfer.load_import_file(content)
    counts = await transfer.import_json(store, data, current_user.username, filename=file.filename or "import.json")
    return {"imported": counts}
