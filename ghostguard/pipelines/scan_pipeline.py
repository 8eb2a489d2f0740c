"""
Unified scan pipeline for email, chat and manually submitted content.

content -> URLs -> session dedup -> heuristic pre-screen -> AI analysis
-> severity/category -> Threat -> repository + content item update.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from ghostguard.config import settings
from ghostguard.errors import AIUnavailable
from ghostguard.schemas.content_schemas import ContentItem
from ghostguard.schemas.threat_schemas import AIAnalysis, Threat, ThreatSource
from ghostguard.services.event_channel import EventType
from ghostguard.services.link_service import HeuristicResult, LinkAnalysisService, link_analysis_service
from ghostguard.services.llm_client import LLMClient, get_llm_client
from ghostguard.services.session_service import ScanSession
from ghostguard.utils.logging_config import StructuredLogger, log_execution_time, metrics, session_id_var
from ghostguard.utils.preprocessing import extract_urls
from ghostguard.utils.severity import derive_category, should_create_threat

logger = StructuredLogger(__name__)


class UrlOutcome(str, Enum):
    THREAT = "threat"
    BENIGN = "benign"
    DEFERRED = "deferred"  # AI unreachable; no verdict this pass
    SKIPPED = "skipped"  # already scanned in this session


@dataclass
class UrlScanResult:
    url: str
    outcome: UrlOutcome
    heuristic: Optional[HeuristicResult] = None
    analysis: Optional[AIAnalysis] = None
    threat: Optional[Threat] = None
    error: Optional[str] = None


@dataclass
class ContentScanReport:
    item_id: str
    results: List[UrlScanResult] = field(default_factory=list)

    @property
    def threats(self) -> List[Threat]:
        return [r.threat for r in self.results if r.threat is not None]

    @property
    def first_threat(self) -> Optional[Threat]:
        threats = self.threats
        return threats[0] if threats else None


class ScanPipeline:
    """
    Stateless orchestrator; every call names the session it works in.

    Policy:
        skip_ai_for_clean_urls: when True a clean heuristic result is final
            and the AI is not called. Default False: the heuristic only
            annotates.
        report_all_threats: when True an item is scanned to the end and all
            its threats are reported. Default False: stop at the first one.
        workers: batch concurrency for scan_all_unscanned (1 = sequential).
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        links: Optional[LinkAnalysisService] = None,
        skip_ai_for_clean_urls: Optional[bool] = None,
        report_all_threats: Optional[bool] = None,
        workers: Optional[int] = None,
    ):
        self._llm = llm
        self.links = links or link_analysis_service
        self.skip_ai_for_clean_urls = (
            settings.skip_ai_for_clean_urls if skip_ai_for_clean_urls is None else skip_ai_for_clean_urls
        )
        self.report_all_threats = (
            settings.report_all_threats if report_all_threats is None else report_all_threats
        )
        self.workers = max(1, workers if workers is not None else settings.scan_workers)

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    # ------------------------------------------------------------------ per URL

    def _scan_one(self, url: str, source: ThreatSource, session: ScanSession) -> UrlScanResult:
        metrics.increment("scan.urls.total")

        # Check-and-mark is atomic; the URL stays marked whatever happens next
        if not session.cache.claim(url):
            metrics.increment("scan.cache.hits")
            return UrlScanResult(url=url, outcome=UrlOutcome.SKIPPED)

        heuristic = self.links.analyze(url)
        if self.skip_ai_for_clean_urls and not heuristic.flagged:
            return UrlScanResult(url=url, outcome=UrlOutcome.BENIGN, heuristic=heuristic)

        try:
            analysis = self.llm.analyze(url=url)
        except AIUnavailable as e:
            logger.warning("AI classifier unavailable, deferring URL", url=url, session_id=session.id, error=str(e))
            return UrlScanResult(
                url=url,
                outcome=UrlOutcome.DEFERRED,
                heuristic=heuristic,
                error=type(e).__name__,
            )

        if not should_create_threat(analysis.confidence_score):
            return UrlScanResult(url=url, outcome=UrlOutcome.BENIGN, heuristic=heuristic, analysis=analysis)

        threat = self._create_threat(url, source, analysis, heuristic, session)
        return UrlScanResult(
            url=url,
            outcome=UrlOutcome.THREAT,
            heuristic=heuristic,
            analysis=analysis,
            threat=threat,
        )

    def _create_threat(
        self,
        url: str,
        source: ThreatSource,
        analysis: AIAnalysis,
        heuristic: HeuristicResult,
        session: ScanSession,
    ) -> Threat:
        threat = Threat(
            url=url,
            score=analysis.confidence_score,
            category=derive_category(analysis.confidence_score, analysis.threat_analysis),
            source=source,
            details=analysis.threat_analysis,
            recommendations=analysis.security_recommendations,
            heuristic_indicators=heuristic.indicators,
        )
        session.threats.add(threat)
        metrics.increment("scan.threats.created")
        logger.info(
            "Threat detected",
            threat_id=threat.id,
            url=url,
            score=threat.score,
            category=threat.category.value,
            source=source.value,
            session_id=session.id,
        )
        session.events.publish(
            EventType.THREAT_DETECTED,
            threat_id=threat.id,
            url=url,
            score=threat.score,
            category=threat.category.value,
            level=threat.level.value,
        )
        return threat

    # ------------------------------------------------------------- public API

    def scan_url(
        self,
        url: str,
        item_id: str,
        session: ScanSession,
        source: Optional[ThreatSource] = None,
    ) -> Optional[Threat]:
        """
        Scan a single URL on behalf of a content item.
        A found threat is linked to the item; a clean verdict leaves the item alone.
        """
        result = self._scan_one(url, ThreatSource(source or session.source), session)
        if result.threat is not None:
            session.record_scan(item_id, result.threat.id)
        return result.threat

    def scan_content(
        self,
        content: str,
        source: ThreatSource,
        item_id: str,
        session: ScanSession,
        stop_at_first: Optional[bool] = None,
    ) -> ContentScanReport:
        """Scan every URL in `content` and report the outcome of each one."""
        token = session_id_var.set(session.id)
        try:
            return self._scan_content(content, source, item_id, session, stop_at_first)
        finally:
            session_id_var.reset(token)

    def _scan_content(
        self,
        content: str,
        source: ThreatSource,
        item_id: str,
        session: ScanSession,
        stop_at_first: Optional[bool],
    ) -> ContentScanReport:
        if stop_at_first is None:
            stop_at_first = not self.report_all_threats
        source = ThreatSource(source)
        report = ContentScanReport(item_id=item_id)

        urls = extract_urls(content)
        if not urls:
            return report

        for url in urls:
            result = self._scan_one(url, source, session)
            report.results.append(result)
            if result.threat is not None:
                session.record_scan(item_id, result.threat.id)
                if stop_at_first:
                    break

        if not report.threats:
            session.record_scan(item_id)

        session.events.publish(
            EventType.SCAN_COMPLETED,
            item_id=item_id,
            urls=len(urls),
            threat_ids=[t.id for t in report.threats],
        )
        return report

    def scan_content_for_threats(
        self,
        content: str,
        source: ThreatSource,
        item_id: str,
        session: ScanSession,
    ) -> Optional[Threat]:
        """First qualifying threat in `content`, or None."""
        return self.scan_content(content, source, item_id, session, stop_at_first=True).first_threat

    @log_execution_time("ghostguard.pipelines.scan_pipeline")
    def scan_all_unscanned(
        self,
        session: ScanSession,
        items: Optional[Iterable[ContentItem]] = None,
    ) -> List[Threat]:
        """
        Scan every item that has URLs and is not scanned yet.
        Threats come back in item order, whatever the worker count.
        """
        pending = [
            item for item in (session.items if items is None else items)
            if item.contains_url and not item.scanned
        ]
        for item in pending:
            if session.get_item(item.id) is not item:
                session.add_item(item)

        def scan(item: ContentItem) -> ContentScanReport:
            return self.scan_content(item.body, session.source, item.id, session)

        if self.workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                reports = list(executor.map(scan, pending))
        else:
            reports = [scan(item) for item in pending]

        threats: List[Threat] = []
        for report in reports:
            if self.report_all_threats:
                threats.extend(report.threats)
            elif report.first_threat is not None:
                threats.append(report.first_threat)

        logger.info(
            "Batch scan finished",
            session_id=session.id,
            items=len(pending),
            threats=len(threats),
        )
        return threats
