import uuid
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ghostguard.config import settings
from ghostguard.database import Base, engine, get_db
from ghostguard.errors import InvalidRequest, InvalidStatusTransition, SessionNotFound, ThreatNotFound
from ghostguard.models import threat_record  # noqa: F401  (registers the table)
from ghostguard.pipelines.scan_pipeline import ScanPipeline
from ghostguard.schemas.api_schemas import (
    AddItemRequest,
    BatchScanResponse,
    CreateSessionRequest,
    ScanContentRequest,
    ScanResponse,
    ScanUrlRequest,
    StatusUpdateRequest,
)
from ghostguard.schemas.content_schemas import ContentItem, EmailMessage
from ghostguard.schemas.session_schemas import ConnectionStatus, SessionKind
from ghostguard.schemas.threat_schemas import (
    Threat,
    ThreatCategory,
    ThreatLevel,
    ThreatSource,
    ThreatStats,
    ThreatStatus,
)
from ghostguard.services.archive_service import archive_threat, update_archived_status
from ghostguard.services.email_service import parse_email_file
from ghostguard.services.session_service import ScanSession, SessionRegistry
from ghostguard.api.security import verify_api_token
from ghostguard.api.admin import router as admin_router
from ghostguard.utils.logging_config import StructuredLogger, init_logging, request_id_var

# Initialize structured logging
init_logging()

logger = StructuredLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="GhostGuard API",
    version="0.1.0",
    description="Unified URL threat scanning for email, chat and manual submissions",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# ============== ERROR MAPPING ==============


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(SessionNotFound)
@app.exception_handler(ThreatNotFound)
async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidStatusTransition)
async def transition_handler(request: Request, exc: InvalidStatusTransition):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


# ============== DEPENDENCIES ==============

registry = SessionRegistry()
pipeline = ScanPipeline()


def get_registry() -> SessionRegistry:
    return registry


def get_pipeline() -> ScanPipeline:
    return pipeline


def _resolve_session(registry: SessionRegistry, session_id: Optional[str]) -> ScanSession:
    return registry.get(session_id) if session_id else registry.manual_session


def _archive(db: Session, threats: List[Threat], session: ScanSession):
    for threat in threats:
        archive_threat(db, threat, session_id=session.id)


app.include_router(admin_router)


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info(registry: SessionRegistry = Depends(get_registry)):
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "model": settings.openai_model,
        "sessions": len(registry.list()),
        "policy": {
            "skip_ai_for_clean_urls": settings.skip_ai_for_clean_urls,
            "report_all_threats": settings.report_all_threats,
            "scan_workers": settings.scan_workers,
        },
    }


# ============== SCANS ==============


@app.post("/scan/url", response_model=ScanResponse, dependencies=[Depends(verify_api_token)])
def scan_url(
    request: ScanUrlRequest,
    registry: SessionRegistry = Depends(get_registry),
    pipeline: ScanPipeline = Depends(get_pipeline),
    db: Session = Depends(get_db),
):
    session = _resolve_session(registry, request.session_id)
    item_id = request.item_id or str(uuid.uuid4())

    threat = pipeline.scan_url(request.url, item_id, session)
    if threat is not None:
        _archive(db, [threat], session)
    return ScanResponse(threat=threat)


@app.post("/scan/content", response_model=ScanResponse, dependencies=[Depends(verify_api_token)])
def scan_content(
    request: ScanContentRequest,
    registry: SessionRegistry = Depends(get_registry),
    pipeline: ScanPipeline = Depends(get_pipeline),
    db: Session = Depends(get_db),
):
    session = _resolve_session(registry, request.session_id)
    item_id = request.item_id or str(uuid.uuid4())

    report = pipeline.scan_content(request.content, request.source, item_id, session, stop_at_first=True)
    _archive(db, report.threats, session)
    return ScanResponse(
        threat=report.first_threat,
        outcomes={r.url: r.outcome.value for r in report.results},
    )


# ============== SESSIONS ==============


@app.post(
    "/sessions",
    response_model=ConnectionStatus,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_token)],
)
def create_session(request: CreateSessionRequest, registry: SessionRegistry = Depends(get_registry)):
    if request.kind == SessionKind.MANUAL:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Manual scans use the built-in session; create 'email' or 'whatsapp' sessions.",
        )
    session = registry.create(request.kind, account=request.account)
    logger.info("Session created", session_id=session.id, kind=session.kind.value)
    return session.status()


@app.get("/sessions/{session_id}", response_model=ConnectionStatus, dependencies=[Depends(verify_api_token)])
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return registry.get(session_id).status()


@app.delete("/sessions/{session_id}", response_model=ConnectionStatus, dependencies=[Depends(verify_api_token)])
def disconnect_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.teardown(session_id)
    logger.info("Session disconnected", session_id=session_id)
    return session.status()


@app.post(
    "/sessions/{session_id}/messages",
    response_model=ContentItem,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_token)],
)
def add_message(session_id: str, request: AddItemRequest, registry: SessionRegistry = Depends(get_registry)):
    return registry.get(session_id).add_item(request.item)


@app.post(
    "/sessions/{session_id}/emails",
    response_model=EmailMessage,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_token)],
)
async def upload_email(
    session_id: str,
    file: UploadFile = File(...),
    registry: SessionRegistry = Depends(get_registry),
):
    """Ingest an .eml file into an email session."""
    session = registry.get(session_id)
    if session.kind != SessionKind.EMAIL:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Session {session_id} is a '{session.kind.value}' session, not 'email'.",
        )
    message = await parse_email_file(file)
    return session.add_item(message)


@app.get("/sessions/{session_id}/items", dependencies=[Depends(verify_api_token)])
def list_items(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return [item.model_dump(mode="json") for item in registry.get(session_id).items]


@app.post("/sessions/{session_id}/scan", response_model=BatchScanResponse, dependencies=[Depends(verify_api_token)])
def scan_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    pipeline: ScanPipeline = Depends(get_pipeline),
    db: Session = Depends(get_db),
):
    """Scan every unscanned item with URLs in the session."""
    session = registry.get(session_id)
    pending = [item for item in session.items if item.contains_url and not item.scanned]
    threats = pipeline.scan_all_unscanned(session)
    _archive(db, threats, session)
    return BatchScanResponse(scanned_items=len(pending), threats=threats)


# ============== THREATS ==============


@app.get("/sessions/{session_id}/threats", response_model=List[Threat], dependencies=[Depends(verify_api_token)])
def list_threats(
    session_id: str,
    status_filter: Optional[ThreatStatus] = None,
    source: Optional[ThreatSource] = None,
    category: Optional[ThreatCategory] = None,
    registry: SessionRegistry = Depends(get_registry),
):
    return registry.get(session_id).threats.list(status=status_filter, source=source, category=category)


@app.get("/sessions/{session_id}/threats/stats", response_model=ThreatStats, dependencies=[Depends(verify_api_token)])
def threat_stats(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return registry.get(session_id).threats.stats()


@app.patch(
    "/sessions/{session_id}/threats/{threat_id}",
    response_model=Threat,
    dependencies=[Depends(verify_api_token)],
)
def update_threat_status(
    session_id: str,
    threat_id: str,
    request: StatusUpdateRequest,
    registry: SessionRegistry = Depends(get_registry),
    db: Session = Depends(get_db),
):
    threat = registry.get(session_id).threats.update_status(threat_id, request.status)
    update_archived_status(db, threat)
    return threat


@app.get("/security-tips/{level}", dependencies=[Depends(verify_api_token)])
def security_tips(level: ThreatLevel, pipeline: ScanPipeline = Depends(get_pipeline)):
    return {"level": level.value, "tips": pipeline.llm.get_security_tips(level)}
