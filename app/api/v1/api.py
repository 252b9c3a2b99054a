# app/api/v1/api.py
from fastapi import APIRouter

from app.api.v1.endpoints import auth, users, categories, assets, borrows, guest, logs, webhooks, data, reports

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth.router, prefix="/auth")
api_router_v1.include_router(users.router, prefix="/users")
api_router_v1.include_router(categories.router, prefix="/categories")
api_router_v1.include_router(assets.router, prefix="/assets")
api_router_v1.include_router(borrows.router, prefix="/borrows")
api_router_v1.include_router(guest.router, prefix="/guest")
api_router_v1.include_router(logs.router, prefix="/logs")
api_router_v1.include_router(webhooks.router, prefix="/webhooks")
api_router_v1.include_router(data.router, prefix="/data")
api_router_v1.include_router(reports.router)
