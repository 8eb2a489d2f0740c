from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union

from ghostguard.schemas.content_schemas import ChatMessage, EmailMessage
from ghostguard.schemas.session_schemas import SessionKind
from ghostguard.schemas.threat_schemas import Threat, ThreatSource, ThreatStatus


class ScanUrlRequest(BaseModel):
    url: str
    item_id: Optional[str] = None
    session_id: Optional[str] = None  # Defaults to the manual session


class ScanContentRequest(BaseModel):
    content: str
    source: ThreatSource = ThreatSource.API
    item_id: Optional[str] = None
    session_id: Optional[str] = None


class ScanResponse(BaseModel):
    """Threat-or-null, plus what happened to each URL."""
    threat: Optional[Threat] = None
    outcomes: Dict[str, str] = {}


class BatchScanResponse(BaseModel):
    scanned_items: int
    threats: List[Threat]


class CreateSessionRequest(BaseModel):
    kind: SessionKind
    account: Optional[str] = None


class AddItemRequest(BaseModel):
    item: Union[EmailMessage, ChatMessage] = Field(discriminator="kind")


class StatusUpdateRequest(BaseModel):
    status: ThreatStatus


class ArchiveStats(BaseModel):
    total: int
    by_level: Dict[str, int]
    by_category: Dict[str, int]
    mitigated: int
