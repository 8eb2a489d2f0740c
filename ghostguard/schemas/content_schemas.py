import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from ghostguard.utils.preprocessing import extract_urls


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentItem(BaseModel):
    """
    A scannable piece of content owned by an email or chat session.

    `scanned` and `threat_ids` are written by the scan pipeline only;
    `threat_ids` are back-references into the session's threat repository.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    body: str = ""
    scanned: bool = False
    threat_ids: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def urls(self) -> List[str]:
        return extract_urls(self.body)

    @computed_field
    @property
    def contains_url(self) -> bool:
        return bool(self.urls)


class EmailMessage(ContentItem):
    kind: Literal["email"] = "email"
    sender: str = ""
    subject: str = ""
    preview: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _fill_preview(self):
        if self.preview is None:
            self.preview = self.body[:50] + "..." if len(self.body) > 50 else self.body
        return self


class ChatMessage(ContentItem):
    kind: Literal["chat"] = "chat"
    sender: str = ""
    timestamp: datetime = Field(default_factory=_utc_now)
