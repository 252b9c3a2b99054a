# app/main.py
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Request, status as fastapi_status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import config
from app.core.config import setup_logging
from app.core.exceptions import AssetUnavailableError, CategoryInUseError, InventoryError
from app.core.inventory import InventoryEngine
from app.core.rate_limiter import get_rate_limiter, rate_limit_exception_handler
from app.core.webhooks import WebhookNotifier
from app.db.database import init_db
from app.db.store import InventoryStore
from app.middleware.authentication import AuthMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.api.v1.api import api_router_v1
from app.scheduler.jobs import retry_pending_webhooks

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    backend = await init_db()
    store = InventoryStore(backend)
    notifier = WebhookNotifier(store)
    app.state.store = store
    app.state.notifier = notifier
    app.state.engine = InventoryEngine(store, notifier)
    logger.info(f"Store initialized ({config.STORAGE_BACKEND}).")

    scheduler = None
    if config.SCHEDULER_ENABLED:
        scheduler = AsyncIOScheduler(timezone=config.SCHEDULER_TIMEZONE)
        scheduler.add_job(
            retry_pending_webhooks,
            trigger=IntervalTrigger(minutes=config.WEBHOOK_RETRY_INTERVAL_MINUTES),
            args=[notifier],
            id="retry_webhooks_job",
            name="Retry Pending Webhooks",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=60 * config.WEBHOOK_RETRY_INTERVAL_MINUTES,
        )
        scheduler.start()
        logger.info(f"Scheduler started with timezone: {scheduler.timezone}")
    yield
    logger.info("Application shutdown...")
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
    await store.close()


app = FastAPI(
    title="Inventory Tracker API",
    description="Pencatatan asset, peminjaman dan pengembalian dengan notifikasi webhook.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- KONFIGURASI MIDDLEWARE ---

# 1. Error Handling
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)


@app.exception_handler(InventoryError)
async def inventory_exception_handler(request: Request, exc: InventoryError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
    content = {"detail": exc.detail}
    if isinstance(exc, AssetUnavailableError):
        content["assetIds"] = exc.asset_ids
    elif isinstance(exc, CategoryInUseError):
        content["assetCount"] = exc.asset_count
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled Exception: {exc}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


# 2. Authentication Middleware (dijalankan setelah request logging)
app.add_middleware(AuthMiddleware)

# 3. Request Logging Middleware
app.add_middleware(RequestLoggingMiddleware)

# 4. Rate Limiter State (untuk decorator @limiter.limit)
app.state.limiter = get_rate_limiter()

# 5. GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=500)

# --- END MIDDLEWARE ---

app.include_router(api_router_v1)


@app.get("/")
async def read_root():
    return {"message": "Welcome to Inventory Tracker API!"}


@app.get("/health")
async def health_check(request: Request):
    store: InventoryStore = request.app.state.store
    await store.get_categories()
    return {"status": "ok", "storage": config.STORAGE_BACKEND}
