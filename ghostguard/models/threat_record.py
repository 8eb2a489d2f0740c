"""
Archived threats.

The in-memory repository is per session; every detected threat is also
written here so history survives session teardown.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text
from ghostguard.database import Base


class ThreatRecord(Base):
    __tablename__ = "threats"

    id = Column(Integer, primary_key=True, index=True)
    threat_id = Column(String(36), unique=True, index=True, nullable=False)
    session_id = Column(String(36), index=True, nullable=True)

    url = Column(Text, nullable=False)
    score = Column(Float, nullable=False)
    level = Column(String(10), nullable=False)      # critical | high | medium | low
    category = Column(String(20), nullable=False)   # phishing | malware | scam | suspicious | safe
    source = Column(String(20), nullable=False)     # email | whatsapp | browser | api | manual
    status = Column(String(20), nullable=False)     # active | investigating | mitigated
    details = Column(Text, nullable=True)
    recommendations = Column(JSON, nullable=True)
    heuristic_indicators = Column(JSON, nullable=True)

    detected_at = Column(String(40), nullable=False)  # ISO 8601 from the Threat
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
