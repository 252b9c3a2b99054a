# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional, List

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext

from app.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from app.models.enum import UserRole
from app.models.user import UserAccount

# Konteks password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# --- Password Functions ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Hash tidak dikenali (misal data impor lama berisi plaintext)
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- Token Function ---
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Returns the 'sub' claim, raising JWTError for an invalid token."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    return payload.get("sub")


# --- Get Current User ---
async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
) -> UserAccount:
    """
    Gets the current account from the request state (set by AuthMiddleware)
    or decodes the token if state is not available.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    username: Optional[str] = getattr(request.state, "username", None)
    if not username:
        if not token:
            raise credentials_exception
        try:
            username = decode_access_token(token)
        except JWTError:
            logger.warning("Token decode failed in get_current_user dependency.")
            raise credentials_exception
        if not username:
            raise credentials_exception

    store = request.app.state.store
    accounts = await store.get_user_accounts()
    account = next((acc for acc in accounts if acc.username == username), None)
    if account is None:
        logger.warning(f"User '{username}' not found in store.")
        raise credentials_exception
    return account


async def get_current_active_user(
    current_user: UserAccount = Depends(get_current_user),
) -> UserAccount:
    """Checks if the retrieved account is active."""
    if not current_user.is_active:
        logger.warning(f"Access denied for inactive user '{current_user.username}'.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def require_roles(required_roles: List[UserRole]):
    """
    Factory for a dependency that checks if the current user has one of the required roles.
    """
    async def roles_checker(current_user: UserAccount = Depends(get_current_active_user)) -> UserAccount:
        if current_user.role not in required_roles:
            logger.warning(
                f"Forbidden: User '{current_user.username}' with role '{current_user.role.value}' "
                f"attempted action requiring one of roles: {[r.value for r in required_roles]}."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required roles: {[r.value for r in required_roles]}",
            )
        return current_user
    return roles_checker


# Convenience dependencies for common roles
require_admin = require_roles([UserRole.ADMIN])
require_user_or_admin = require_roles([UserRole.ADMIN, UserRole.USER])
