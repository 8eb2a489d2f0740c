"""Smoke tests to verify basic functionality."""

from conftest import FakeLLM, make_analysis
from ghostguard.pipelines.scan_pipeline import ScanPipeline
from ghostguard.schemas.session_schemas import SessionKind
from ghostguard.schemas.content_schemas import ChatMessage
from ghostguard.services.session_service import SessionRegistry


def test_end_to_end_chat_session():
    """A chat session finds the one dangerous link and reports it once."""
    registry = SessionRegistry(shared_threats=False)
    session = registry.create(SessionKind.WHATSAPP, account="+15550100")
    pipeline = ScanPipeline(llm=FakeLLM(verdicts={"http://evil.example/login": make_analysis(95)}), workers=1)

    session.add_item(ChatMessage(body="lunch? https://maps.example/cafe"))
    session.add_item(ChatMessage(body="your parcel is held: http://evil.example/login"))

    threats = pipeline.scan_all_unscanned(session)

    assert len(threats) == 1
    assert session.threats.stats().critical == 1
    assert all(item.scanned for item in session.items)

    registry.teardown(session.id)
    assert session.items == []


def test_pipeline_defaults_from_settings():
    """Test ScanPipeline picks up the configured policy."""
    pipeline = ScanPipeline(llm=FakeLLM())
    assert pipeline.skip_ai_for_clean_urls is False
    assert pipeline.report_all_threats is False
    assert pipeline.workers == 1
