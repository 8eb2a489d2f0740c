import os

# Keep the archive in memory for the test run
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("API_TOKEN", "")

import threading
from typing import Dict, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from ghostguard.api.server import app, get_pipeline, get_registry
from ghostguard.errors import AIUnavailable
from ghostguard.pipelines.scan_pipeline import ScanPipeline
from ghostguard.schemas.threat_schemas import AIAnalysis
from ghostguard.services.link_service import LinkAnalysisService
from ghostguard.services.lists_service import DomainLists
from ghostguard.services.session_service import SessionRegistry
from ghostguard.schemas.session_schemas import SessionKind


def make_analysis(score: float, text: str = "Looks like a phishing page") -> AIAnalysis:
    return AIAnalysis(
        threat_analysis=text,
        security_recommendations=["Do not click", "Report the sender"],
        confidence_score=score,
    )


class FakeLLM:
    """
    Stand-in for LLMClient.

    `verdicts` maps URL -> AIAnalysis or an exception instance to raise.
    Unknown URLs get `default`.
    """

    def __init__(
        self,
        verdicts: Optional[Dict[str, Union[AIAnalysis, Exception]]] = None,
        default: Optional[AIAnalysis] = None,
    ):
        self.verdicts = verdicts or {}
        self.default = default or make_analysis(10, "Legitimate site")
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def analyze(self, url=None, content=None) -> AIAnalysis:
        with self._lock:
            self.calls.append(url or content)
        verdict = self.verdicts.get(url, self.default)
        if isinstance(verdict, Exception):
            raise verdict
        return verdict

    def get_security_tips(self, level):
        return ["Tip one", "Tip two", "Tip three"]


@pytest.fixture
def lists():
    """Fresh heuristic lists with the built-in defaults."""
    return DomainLists()


@pytest.fixture
def links(lists):
    return LinkAnalysisService(lists)


@pytest.fixture
def fake_llm():
    return FakeLLM(
        verdicts={
            "http://evil.example/login": make_analysis(90, "Classic phishing kit"),
            "http://drop.example/payload.exe": make_analysis(85, "Serves a trojan"),
            "http://offer.example/prize": make_analysis(70, "Too good to be true prize"),
            "http://odd.example/": make_analysis(45, "Some odd redirects"),
            "http://down.example/": AIUnavailable("connection refused"),
        }
    )


@pytest.fixture
def pipeline(fake_llm, links):
    return ScanPipeline(llm=fake_llm, links=links, skip_ai_for_clean_urls=False, report_all_threats=False, workers=1)


@pytest.fixture
def registry():
    registry = SessionRegistry(shared_threats=False)
    yield registry
    registry.teardown_all()


@pytest.fixture
def chat_session(registry):
    return registry.create(SessionKind.WHATSAPP, account="+15550100")


@pytest.fixture
def email_session(registry):
    return registry.create(SessionKind.EMAIL, account="alice@gmail.com")


@pytest.fixture
def client(registry, pipeline):
    """FastAPI test client fixture with an isolated registry and a fake AI."""
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_phishing_text():
    """Sample message carrying a phishing link."""
    return "URGENT: your account is locked, verify at http://evil.example/login now"


@pytest.fixture
def sample_safe_text():
    """Sample safe message for testing."""
    return "Hi, just wanted to check in about our meeting tomorrow at 3pm."
