"""
Static domain lists for the heuristic URL pre-screen.
Known bad domains, suspicious TLDs and URL shorteners.
"""

import threading
from typing import Dict, Iterable, List, Optional, Set
from dataclasses import dataclass
from enum import Enum

from ghostguard.config import settings


DEFAULT_MALICIOUS_DOMAINS = [
    "malicious-site.com",
    "phishing-domain.net",
    "scam-link.org",
    "malware-test.com",
    "phishing.example.net",
]

DEFAULT_SUSPICIOUS_TLDS = [".xyz", ".top", ".info", ".click"]

# Shorteners hide the final destination; they always go to the AI pass
DEFAULT_URL_SHORTENERS = ["bit.ly", "t.co", "tinyurl.com", "goo.gl", "tiny.cc"]


class ListType(str, Enum):
    BLOCKLIST = "blocklist"
    SUSPICIOUS_TLD = "suspicious_tld"
    SHORTENER = "shortener"


@dataclass
class ListMatch:
    """Result of a hostname check."""
    matched: bool
    list_type: Optional[ListType]
    pattern: Optional[str]


class DomainLists:
    """
    Holds the heuristic lists.

    Matching rules:
    - blocklist: substring of the hostname
    - suspicious TLDs: hostname suffix
    - shorteners: exact hostname
    """

    def __init__(
        self,
        malicious_domains: Optional[Iterable[str]] = None,
        suspicious_tlds: Optional[Iterable[str]] = None,
        url_shorteners: Optional[Iterable[str]] = None,
    ):
        self._lock = threading.Lock()
        self._blocklist: Set[str] = set()
        self._suspicious_tlds: Set[str] = set()
        self._shorteners: Set[str] = set()

        self._blocklist.update(_lower(malicious_domains if malicious_domains is not None else DEFAULT_MALICIOUS_DOMAINS))
        self._suspicious_tlds.update(_normalize_tld(t) for t in (suspicious_tlds if suspicious_tlds is not None else DEFAULT_SUSPICIOUS_TLDS))
        self._shorteners.update(_lower(url_shorteners if url_shorteners is not None else DEFAULT_URL_SHORTENERS))

    @classmethod
    def from_settings(cls) -> "DomainLists":
        """Built-in defaults extended with anything configured in the environment."""
        return cls(
            malicious_domains=DEFAULT_MALICIOUS_DOMAINS + settings.malicious_domains_list,
            suspicious_tlds=DEFAULT_SUSPICIOUS_TLDS + settings.suspicious_tlds_list,
            url_shorteners=DEFAULT_URL_SHORTENERS + settings.url_shorteners_list,
        )

    def add_to_blocklist(self, value: str, list_type: ListType = ListType.BLOCKLIST) -> bool:
        """Add an entry to one of the lists. Returns False for blank input."""
        value = (value or "").strip().lower()
        if not value:
            return False
        with self._lock:
            if list_type == ListType.SUSPICIOUS_TLD:
                self._suspicious_tlds.add(_normalize_tld(value))
            elif list_type == ListType.SHORTENER:
                self._shorteners.add(value)
            else:
                self._blocklist.add(value)
        return True

    def remove_from_blocklist(self, value: str, list_type: ListType = ListType.BLOCKLIST) -> bool:
        """Remove an entry. Returns False if it was not present."""
        value = (value or "").strip().lower()
        with self._lock:
            if list_type == ListType.SUSPICIOUS_TLD:
                target = self._suspicious_tlds
                value = _normalize_tld(value) if value else value
            elif list_type == ListType.SHORTENER:
                target = self._shorteners
            else:
                target = self._blocklist
            if value not in target:
                return False
            target.discard(value)
        return True

    def check_hostname(self, hostname: str) -> List[ListMatch]:
        """Every list entry that fires for an already lower-cased hostname."""
        matches: List[ListMatch] = []
        with self._lock:
            for domain in sorted(self._blocklist):
                if domain in hostname:
                    matches.append(ListMatch(True, ListType.BLOCKLIST, domain))
                    break
            for tld in sorted(self._suspicious_tlds):
                if hostname.endswith(tld):
                    matches.append(ListMatch(True, ListType.SUSPICIOUS_TLD, tld))
                    break
            if hostname in self._shorteners:
                matches.append(ListMatch(True, ListType.SHORTENER, hostname))
        return matches

    def get_stats(self) -> Dict[str, int]:
        """Get list statistics."""
        with self._lock:
            return {
                "blocklist_domains": len(self._blocklist),
                "suspicious_tlds": len(self._suspicious_tlds),
                "url_shorteners": len(self._shorteners),
            }


def _lower(values: Iterable[str]) -> List[str]:
    return [v.strip().lower() for v in values if v and v.strip()]


def _normalize_tld(tld: str) -> str:
    tld = tld.strip().lower()
    return tld if tld.startswith(".") else "." + tld


# Global instance
domain_lists = DomainLists.from_settings()
