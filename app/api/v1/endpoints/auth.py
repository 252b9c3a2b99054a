# app/api/v1/endpoints/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from app.api.deps import get_store
from app.core.accounts import authenticate, record_logout
from app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from app.core.rate_limiter import limiter
from app.core.security import create_access_token, get_current_active_user
from app.db.store import InventoryStore
from app.models.token import Token
from app.models.user import CurrentUser, UserAccount

router = APIRouter(tags=["Authentication"])


# --- Endpoint /token ---
# Path will become /api/v1/auth/token
@router.post("/token", response_model=Token)
@limiter.limit("10/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: InventoryStore = Depends(get_store),
):
    account = await authenticate(store, form_data.username, form_data.password)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Username atau password salah, atau akun tidak aktif.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": account.username, "role": account.role.value},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    logger.info(f"Token issued for '{account.username}'.")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
async def logout(
    current_user: UserAccount = Depends(get_current_active_user),
    store: InventoryStore = Depends(get_store),
):
    # Token JWT stateless; logout hanya dicatat di activity log
    await record_logout(store, current_user)
    return {"detail": "Logged out"}


@router.get("/me", response_model=CurrentUser)
async def read_users_me(current_user: UserAccount = Depends(get_current_active_user)):
    return CurrentUser(username=current_user.username, role=current_user.role)
