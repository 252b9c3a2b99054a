# app/core/config.py
import os
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Root project = dua level di atas app/core
project_root = Path(__file__).resolve().parent.parent.parent
dotenv_path = project_root / ".env"

# --- Muat file .env JIKA ADA ---
if dotenv_path.is_file():
    logger.debug(f"Loading environment variables from: {dotenv_path}")
    load_dotenv(dotenv_path=dotenv_path, override=False)
else:
    logger.debug(f".env file not found at {dotenv_path}. Relying on system environment variables.")


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}. Using default: {default}.")
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}. Using default: {default}.")
        return default


# --- Intercept Handler (untuk Loguru menangkap log standar) ---
class InterceptHandler(logging.Handler):
    """Handler untuk mencegat log standar Python dan mengarahkannya ke Loguru."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Konfigurasi Loguru untuk aplikasi."""
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    log_file_path = Path(os.getenv("LOG_FILE_PATH", "logs/app_{time:YYYY-MM-DD}.log"))
    log_rotation = os.getenv("LOG_ROTATION", "1 day")
    log_retention = os.getenv("LOG_RETENTION", "7 days")
    log_serialize = _get_bool("LOG_SERIALIZE", False)
    log_to_file = _get_bool("LOG_TO_FILE", True)

    logger.remove()  # Hapus handler default

    # Handler Console
    logger.add(sys.stderr, level=log_level_name, format=log_format, colorize=True)

    # Handler File
    if log_to_file:
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_file_path,
                level=log_level_name,
                format=log_format,
                rotation=log_rotation,
                retention=log_retention,
                serialize=log_serialize,
                enqueue=True,
                backtrace=True,
                diagnose=False,
                encoding="utf-8",
            )
            logger.info(f"File logging enabled at: {log_file_path}")
        except OSError as e:
            logger.error(f"Failed to setup file logging at {log_file_path}: {e}")

    # --- Intercept Log Standar ---
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("uvicorn", "fastapi", "starlette", "apscheduler", "httpx")):
            existing_logger = logging.getLogger(name)
            existing_logger.handlers = [InterceptHandler()]
            existing_logger.propagate = False

    logger.info(f"Loguru logging setup complete. Level: {log_level_name}")


# --- JWT Configuration ---
SECRET_KEY: str = os.getenv("SECRET_KEY", "")
if not SECRET_KEY:
    logger.critical("FATAL: SECRET_KEY environment variable is not set.")
    raise ValueError("SECRET_KEY environment variable is not set.")

ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = _get_int("ACCESS_TOKEN_EXPIRE_MINUTES", 30)

# --- Storage Configuration ---
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "mongo").strip().lower()
if STORAGE_BACKEND not in ("mongo", "memory"):
    logger.critical(f"FATAL: Unknown STORAGE_BACKEND '{STORAGE_BACKEND}'.")
    raise ValueError("STORAGE_BACKEND must be 'mongo' or 'memory'.")

MONGODB_URL: str = os.getenv("MONGODB_URL", "")
if STORAGE_BACKEND == "mongo" and not MONGODB_URL:
    logger.critical("FATAL: MONGODB_URL environment variable is not set.")
    raise ValueError("MONGODB_URL environment variable is not set.")

# Coba ekstrak nama DB dari URL
_default_db_name = "inventory_tracker_db"
_path_part = MONGODB_URL.rsplit("/", 1)[-1].split("?")[0] if "/" in MONGODB_URL.replace("://", "") else ""
if _path_part:
    _default_db_name = _path_part
DATABASE_NAME: str = os.getenv("DATABASE_NAME", _default_db_name)

# --- Webhook Configuration ---
WEBHOOK_TIMEOUT_SECONDS: float = _get_float("WEBHOOK_TIMEOUT_SECONDS", 10.0)
WEBHOOK_MAX_ATTEMPTS: int = _get_int("WEBHOOK_MAX_ATTEMPTS", 5)
WEBHOOK_RETRY_BASE_SECONDS: int = _get_int("WEBHOOK_RETRY_BASE_SECONDS", 60)
WEBHOOK_RETRY_INTERVAL_MINUTES: int = _get_int("WEBHOOK_RETRY_INTERVAL_MINUTES", 5)
# Jumlah entri outbox yang sudah selesai (delivered/failed) yang disimpan
WEBHOOK_OUTBOX_KEEP_FINISHED: int = _get_int("WEBHOOK_OUTBOX_KEEP_FINISHED", 200)

# --- Scheduler & Rate Limit ---
SCHEDULER_ENABLED: bool = _get_bool("SCHEDULER_ENABLED", True)
SCHEDULER_TIMEZONE: str = os.getenv("SCHEDULER_TIMEZONE", "Asia/Jakarta")
RATE_LIMIT_ENABLED: bool = _get_bool("RATE_LIMIT_ENABLED", True)

logger.info(f"JWT Algorithm: {ALGORITHM}")
logger.info(f"Access Token Expire Minutes: {ACCESS_TOKEN_EXPIRE_MINUTES}")
logger.info(f"Storage backend: {STORAGE_BACKEND}")
if STORAGE_BACKEND == "mongo":
    logger.info(f"Database Name: {DATABASE_NAME}")
