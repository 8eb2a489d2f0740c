import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from ghostguard.services.lists_service import DomainLists, ListType, domain_lists

logger = logging.getLogger(__name__)


INDICATOR_BY_LIST = {
    ListType.BLOCKLIST: "blocklisted_domain",
    ListType.SUSPICIOUS_TLD: "suspicious_tld",
    ListType.SHORTENER: "url_shortener",
}


@dataclass
class HeuristicResult:
    flagged: bool
    indicators: List[str] = field(default_factory=list)
    hostname: Optional[str] = None


class LinkAnalysisService:
    """
    Fast local URL pre-screen. No network access, no side effects.
    A flag here is a signal for the AI pass, not a verdict.
    """

    def __init__(self, lists: Optional[DomainLists] = None):
        self.lists = lists or domain_lists

    def analyze(self, url: str) -> HeuristicResult:
        url = (url or "").strip()
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError:
            hostname = None
            parsed = None

        # Unparseable URLs are treated as suspicious
        if parsed is None or not parsed.scheme or not hostname:
            logger.debug(f"Could not parse URL, flagging as suspicious: {url!r}")
            return HeuristicResult(flagged=True, indicators=["unparseable_url"])

        hostname = hostname.lower()
        indicators = [
            INDICATOR_BY_LIST[match.list_type]
            for match in self.lists.check_hostname(hostname)
        ]
        return HeuristicResult(flagged=bool(indicators), indicators=indicators, hostname=hostname)

    def quick_malicious_check(self, url: str) -> bool:
        return self.analyze(url).flagged


link_analysis_service = LinkAnalysisService()


def quick_malicious_check(url: str) -> bool:
    """True if the URL is unparseable or hits the blocklist, a suspicious TLD, or a shortener."""
    return link_analysis_service.quick_malicious_check(url)
