import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class ThreatCategory(str, Enum):
    PHISHING = "phishing"
    MALWARE = "malware"
    SCAM = "scam"
    SUSPICIOUS = "suspicious"
    SAFE = "safe"


class ThreatSource(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    BROWSER = "browser"
    API = "api"
    MANUAL = "manual"


class ThreatStatus(str, Enum):
    ACTIVE = "active"
    INVESTIGATING = "investigating"
    MITIGATED = "mitigated"


class ThreatLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Threat(BaseModel):
    """A URL judged dangerous enough to surface. Only `status` is mutable."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    url: str = Field(frozen=True)
    timestamp: str = Field(default_factory=_utc_now_iso, frozen=True)
    score: float = Field(ge=0, le=100, frozen=True)
    category: ThreatCategory = Field(frozen=True)
    source: ThreatSource = Field(frozen=True)
    details: str = Field(frozen=True)
    status: ThreatStatus = ThreatStatus.ACTIVE
    recommendations: List[str] = Field(default_factory=list, frozen=True)
    heuristic_indicators: List[str] = Field(default_factory=list, frozen=True)

    @computed_field
    @property
    def level(self) -> ThreatLevel:
        from ghostguard.utils.severity import get_threat_level

        return get_threat_level(self.score)


class ThreatStats(BaseModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    mitigated: int = 0


class AIAnalysis(BaseModel):
    """
    Result contract of the AI classifier.
    Accepts the camelCase keys the model is prompted to emit.
    """

    model_config = ConfigDict(populate_by_name=True)

    threat_analysis: str = Field(alias="threatAnalysis")
    security_recommendations: List[str] = Field(
        default_factory=list, alias="securityRecommendations"
    )
    confidence_score: float = Field(alias="confidenceScore")
    degraded: bool = False  # True for the zero-confidence parse-failure fallback

    @field_validator("security_recommendations", mode="before")
    @classmethod
    def _coerce_recommendations(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _reject_bool_score(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("confidenceScore must be a number")
        return value

    @field_validator("confidence_score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("confidenceScore must be a number")
        return max(0.0, min(100.0, value))
