# app/models/log.py
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class LogEntry(BaseModel):
    """Catatan audit aktivitas pengguna."""
    id: str
    timestamp: datetime
    user: str
    action: str
    details: str

    class Update(BaseModel):
        action: Optional[str] = None
        details: Optional[str] = None
