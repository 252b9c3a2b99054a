# app/core/transfer.py
"""Export (JSON / SQL) dan import JSON seluruh data inventaris."""
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from app.core.activity import add_log
from app.core.exceptions import ImportFormatError
from app.db.store import InventoryStore, StoreTransaction
from app.models.asset import Asset
from app.models.borrow import BorrowRecord
from app.models.category import Category
from app.models.log import LogEntry

IMPORT_KEYS = ("assets", "categories", "borrows", "logs")


def _dump(items) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


async def export_json(store: InventoryStore, actor: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "assets": _dump(await store.get_assets()),
        "categories": _dump(await store.get_categories()),
        "borrows": _dump(await store.get_borrows()),
        "logs": _dump(await store.get_logs()),
        "exportDate": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    if actor:
        await add_log(store, actor, "Export", "Data exported to JSON")
    return data


def _number(value: float) -> str:
    # 1500000.0 -> 1500000, 12.5 -> 12.5
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def _optional(value: Optional[str]) -> str:
    return f"'{value}'" if value else "NULL"


def build_sql(assets: List[Asset], categories: List[Category], borrows: List[BorrowRecord]) -> str:
    """Plain CREATE TABLE / INSERT script; values are interpolated without escaping."""
    sql = "-- CIMBJ Database Export\n\n"

    sql += "CREATE TABLE IF NOT EXISTS categories (\n"
    sql += "  id VARCHAR(255) PRIMARY KEY,\n"
    sql += "  nama VARCHAR(255) NOT NULL\n"
    sql += ");\n\n"
    for cat in categories:
        sql += f"INSERT INTO categories (id, nama) VALUES ('{cat.id}', '{cat.nama}');\n"

    sql += "\nCREATE TABLE IF NOT EXISTS assets (\n"
    sql += "  id VARCHAR(255) PRIMARY KEY,\n"
    sql += "  nama VARCHAR(255) NOT NULL,\n"
    sql += "  sku VARCHAR(255),\n"
    sql += "  deskripsi TEXT,\n"
    sql += "  kategori VARCHAR(255),\n"
    sql += "  nilai DECIMAL(10,2),\n"
    sql += "  qty INT,\n"
    sql += "  status VARCHAR(50)\n"
    sql += ");\n\n"
    for asset in assets:
        sql += (
            "INSERT INTO assets (id, nama, sku, deskripsi, kategori, nilai, qty, status) VALUES "
            f"('{asset.id}', '{asset.nama}', {_optional(asset.sku)}, {_optional(asset.deskripsi)}, "
            f"'{asset.kategori}', {_number(asset.nilai)}, {asset.qty}, '{asset.status.value}');\n"
        )

    sql += "\nCREATE TABLE IF NOT EXISTS borrows (\n"
    sql += "  id VARCHAR(255) PRIMARY KEY,\n"
    sql += "  id_pegawai VARCHAR(255),\n"
    sql += "  nama_pegawai VARCHAR(255),\n"
    sql += "  assets TEXT,\n"
    sql += "  lama_dipinjam INT,\n"
    sql += "  kebutuhan TEXT,\n"
    sql += "  status VARCHAR(50),\n"
    sql += "  tanggal_pinjam DATE,\n"
    sql += "  tanggal_kembali DATE\n"
    sql += ");\n\n"
    for borrow in borrows:
        asset_list = json.dumps(borrow.assets, separators=(",", ":"))
        returned = borrow.tanggal_kembali.isoformat() if borrow.tanggal_kembali else None
        sql += (
            "INSERT INTO borrows (id, id_pegawai, nama_pegawai, assets, lama_dipinjam, kebutuhan, status, "
            "tanggal_pinjam, tanggal_kembali) VALUES "
            f"('{borrow.id}', '{borrow.id_pegawai}', '{borrow.nama_pegawai}', '{asset_list}', "
            f"{borrow.lama_dipinjam}, '{borrow.kebutuhan}', '{borrow.status.value}', "
            f"'{borrow.tanggal_pinjam.isoformat()}', {_optional(returned)});\n"
        )
    return sql


async def export_sql(store: InventoryStore, actor: Optional[str] = None) -> str:
    sql = build_sql(await store.get_assets(), await store.get_categories(), await store.get_borrows())
    if actor:
        await add_log(store, actor, "Export SQL", "Data exported to SQL format")
    return sql


def parse_import(data: Any) -> Dict[str, list]:
    """Validate an import document; raises ImportFormatError without touching the store."""
    if not isinstance(data, dict) or any(key not in data or not isinstance(data[key], list) for key in IMPORT_KEYS):
        raise ImportFormatError("Format file tidak valid")
    try:
        return {
            "assets": [Asset.model_validate(item) for item in data["assets"]],
            "categories": [Category.model_validate(item) for item in data["categories"]],
            "borrows": [BorrowRecord.model_validate(item) for item in data["borrows"]],
            "logs": [LogEntry.model_validate(item) for item in data["logs"]],
        }
    except ValidationError as e:
        logger.warning(f"Import rejected: {e.error_count()} validation errors.")
        raise ImportFormatError("Format file tidak valid") from e


def load_import_file(content: bytes) -> Any:
    try:
        return json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportFormatError("File tidak dapat dibaca") from e


async def import_json(store: InventoryStore, data: Any, actor: str, filename: str = "import.json") -> Dict[str, int]:
    """Replace assets, categories, borrows and logs in one transaction."""
    parsed = parse_import(data)

    async def work(tx: StoreTransaction) -> None:
        await tx.set_assets(parsed["assets"])
        await tx.set_categories(parsed["categories"])
        await tx.set_borrows(parsed["borrows"])
        await tx.set_logs(parsed["logs"])
        await add_log(tx, actor, "Import", f"Data imported from {filename}")

    await store.run_transaction(work)
    counts = {key: len(parsed[key]) for key in IMPORT_KEYS}
    logger.info(f"Import from {filename} by {actor}: {counts}")
    return counts
