"""Tests for the per-session scan cache."""

import threading

from ghostguard.services.cache_service import ScanCache


class TestScanCache:
    def test_unknown_url_not_scanned(self):
        assert ScanCache().has_scanned("http://a.example") is False

    def test_mark_then_has_scanned(self):
        cache = ScanCache()
        cache.mark_scanned("http://a.example")
        assert cache.has_scanned("http://a.example") is True
        assert cache.has_scanned("http://a.example/") is False

    def test_claim_first_caller_wins(self):
        cache = ScanCache()
        assert cache.claim("http://a.example") is True
        assert cache.claim("http://a.example") is False
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_clear_forgets_everything(self):
        cache = ScanCache()
        cache.claim("http://a.example")
        cache.claim("http://a.example")
        cache.clear()
        assert cache.has_scanned("http://a.example") is False
        assert cache.size == 0
        assert cache.hits == 0

    def test_concurrent_claims_single_winner(self):
        cache = ScanCache()
        barrier = threading.Barrier(8)
        wins = []

        def worker():
            barrier.wait()
            if cache.claim("http://race.example"):
                wins.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == 1
        assert cache.hits == 7
