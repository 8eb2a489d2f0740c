"""
Threat archive service.
Writes detected threats and their status changes to the database.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func

from ghostguard.models.threat_record import ThreatRecord
from ghostguard.schemas.threat_schemas import Threat


def archive_threat(
    db: Session,
    threat: Threat,
    session_id: Optional[str] = None,
) -> ThreatRecord:
    """
    Persist a detected threat.

    Args:
        db: Database session
        threat: The threat as returned by the scan pipeline
        session_id: Scan session the threat was found in
    """
    record = ThreatRecord(
        threat_id=threat.id,
        session_id=session_id,
        url=threat.url,
        score=threat.score,
        level=threat.level.value,
        category=threat.category.value,
        source=threat.source.value,
        status=threat.status.value,
        details=threat.details,
        recommendations=list(threat.recommendations),
        heuristic_indicators=list(threat.heuristic_indicators),
        detected_at=threat.timestamp,
    )

    db.add(record)
    db.commit()
    db.refresh(record)

    return record


def update_archived_status(db: Session, threat: Threat) -> Optional[ThreatRecord]:
    """Mirror a status change; returns None if the threat was never archived."""
    record = db.query(ThreatRecord).filter(ThreatRecord.threat_id == threat.id).first()
    if record is None:
        return None
    record.status = threat.status.value
    db.commit()
    db.refresh(record)
    return record


def list_archived_threats(
    db: Session,
    session_id: Optional[str] = None,
    limit: int = 100,
) -> List[ThreatRecord]:
    query = db.query(ThreatRecord)
    if session_id:
        query = query.filter(ThreatRecord.session_id == session_id)
    return query.order_by(ThreatRecord.id.desc()).limit(limit).all()


def get_archive_stats(db: Session) -> Dict[str, Any]:
    """Counts per severity band and category across all archived threats."""
    total = db.query(ThreatRecord).count()

    by_level = dict(
        db.query(ThreatRecord.level, func.count(ThreatRecord.id))
        .group_by(ThreatRecord.level)
        .all()
    )
    by_category = dict(
        db.query(ThreatRecord.category, func.count(ThreatRecord.id))
        .group_by(ThreatRecord.category)
        .all()
    )
    mitigated = db.query(ThreatRecord).filter(ThreatRecord.status == "mitigated").count()

    return {
        "total": total,
        "by_level": by_level,
        "by_category": by_category,
        "mitigated": mitigated,
    }
