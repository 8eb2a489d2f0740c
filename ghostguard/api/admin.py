"""
Admin API endpoints for GhostGuard management.

Includes:
- Heuristic list management (blocklist, suspicious TLDs, shorteners)
- Threat archive queries
- Metrics and monitoring
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ghostguard.api.security import verify_api_token
from ghostguard.database import get_db
from ghostguard.schemas.api_schemas import ArchiveStats
from ghostguard.services.archive_service import get_archive_stats, list_archived_threats
from ghostguard.services.link_service import link_analysis_service
from ghostguard.services.lists_service import ListType, domain_lists
from ghostguard.utils.logging_config import metrics


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


# ============== SCHEMAS ==============


class ListEntryRequest(BaseModel):
    value: str
    list_type: ListType = ListType.BLOCKLIST


class ListStatsResponse(BaseModel):
    blocklist_domains: int
    suspicious_tlds: int
    url_shorteners: int


# ============== LIST ENDPOINTS ==============


@router.post("/lists")
async def add_list_entry(request: ListEntryRequest):
    """Add a domain, TLD or shortener host to the heuristic lists."""
    if not domain_lists.add_to_blocklist(request.value, list_type=request.list_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Value must not be empty.",
        )

    return {
        "message": "Successfully added",
        "value": request.value,
        "list_type": request.list_type.value,
    }


@router.delete("/lists")
async def remove_list_entry(request: ListEntryRequest):
    success = domain_lists.remove_from_blocklist(request.value, list_type=request.list_type)

    return {
        "message": "Removed" if success else "Value not found",
        "value": request.value,
        "list_type": request.list_type.value,
    }


@router.get("/lists/stats", response_model=ListStatsResponse)
async def get_lists_stats():
    return domain_lists.get_stats()


@router.get("/lists/check")
async def check_url(url: str):
    """Run the heuristic pre-screen against a URL."""
    result = link_analysis_service.analyze(url)
    return {
        "url": url,
        "hostname": result.hostname,
        "flagged": result.flagged,
        "indicators": result.indicators,
    }


# ============== ARCHIVE ENDPOINTS ==============


@router.get("/archive")
def get_archive(session_id: str | None = None, limit: int = 100, db: Session = Depends(get_db)):
    records = list_archived_threats(db, session_id=session_id, limit=limit)
    return [
        {
            "threat_id": r.threat_id,
            "session_id": r.session_id,
            "url": r.url,
            "score": r.score,
            "level": r.level,
            "category": r.category,
            "source": r.source,
            "status": r.status,
            "detected_at": r.detected_at,
        }
        for r in records
    ]


@router.get("/archive/stats", response_model=ArchiveStats)
def get_archive_statistics(db: Session = Depends(get_db)):
    return get_archive_stats(db)


# ============== METRICS ENDPOINTS ==============


@router.get("/metrics")
async def get_metrics():
    """Get current application metrics."""
    return metrics.get_stats()


@router.post("/metrics/reset")
async def reset_metrics():
    """Reset all metrics (use with caution)."""
    metrics.reset()
    return {"message": "Metrics reset"}
