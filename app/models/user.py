# app/models/user.py
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field

from .enum import UserRole


class UserAccount(BaseModel):
    id: str
    username: str
    password: str  # Disimpan sebagai hash passlib
    role: UserRole = UserRole.USER
    is_active: bool = Field(default=True, alias="isActive")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")
    created_by: str = Field(default="system", alias="createdBy")

    class Config:
        populate_by_name = True

    # --- Pydantic Schemas ---
    class Response(BaseModel):
        id: str
        username: str
        role: UserRole
        is_active: bool = Field(..., alias="isActive")
        created_at: datetime = Field(..., alias="createdAt")
        created_by: str = Field(..., alias="createdBy")

        class Config:
            from_attributes = True
            populate_by_name = True

    class Create(BaseModel):
        username: str
        password: str
        role: UserRole = UserRole.USER
        is_active: bool = Field(default=True, alias="isActive")

        class Config:
            populate_by_name = True

    class Update(BaseModel):
        username: Optional[str] = None
        password: Optional[str] = None  # Kosong = password tidak diganti
        role: Optional[UserRole] = None
        is_active: Optional[bool] = Field(None, alias="isActive")

        class Config:
            populate_by_name = True


class CurrentUser(BaseModel):
    """Identitas sesi yang sedang login."""
    username: str
    role: UserRole
