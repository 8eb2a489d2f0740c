from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel


class SessionKind(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    MANUAL = "manual"


class ConnectionStatus(BaseModel):
    session_id: str
    kind: SessionKind
    connected: bool
    account: Optional[str] = None
    provider: Optional[str] = None
    last_sync_time: Optional[datetime] = None
    error: Optional[str] = None
    items: int = 0
    cache: Dict[str, int] = {}
