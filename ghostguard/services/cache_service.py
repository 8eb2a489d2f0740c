"""
Per-session scan deduplication.
Remembers which URLs a session has already sent through the pipeline.
"""

import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)


class ScanCache:
    """
    URL -> scanned map for one session.

    No TTL and no eviction: entries live until the owning session is torn
    down. `claim` is the atomic check-and-mark the pipeline uses so that two
    concurrent scans of the same URL never both reach the AI classifier.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._scanned: Dict[str, bool] = {}
        self._hits = 0
        self._misses = 0

    def has_scanned(self, url: str) -> bool:
        with self._lock:
            return self._scanned.get(url, False)

    def mark_scanned(self, url: str):
        with self._lock:
            self._scanned[url] = True

    def claim(self, url: str) -> bool:
        """
        Mark `url` as scanned and report whether this caller got there first.

        Returns:
            True if the URL was not scanned before (caller must scan it),
            False on a cache hit.
        """
        with self._lock:
            if self._scanned.get(url, False):
                self._hits += 1
                logger.debug(f"Scan cache hit: {url}")
                return False
            self._scanned[url] = True
            self._misses += 1
            return True

    def clear(self):
        """Forget every URL and reset counters."""
        with self._lock:
            self._scanned.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Scan cache cleared")

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._scanned)

    @property
    def hits(self) -> int:
        with self._lock:
            return self._hits

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._scanned),
                "hits": self._hits,
                "misses": self._misses,
            }
