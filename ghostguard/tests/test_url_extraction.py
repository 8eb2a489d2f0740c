"""Tests for URL extraction from free text."""

from ghostguard.utils.preprocessing import extract_urls


class TestExtractUrls:
    def test_single_url(self):
        assert extract_urls("Visit https://example.com today") == ["https://example.com"]

    def test_http_and_https_in_order(self):
        text = "first http://a.example/x then https://b.example/y"
        assert extract_urls(text) == ["http://a.example/x", "https://b.example/y"]

    def test_duplicates_are_kept(self):
        text = "http://dup.example and again http://dup.example"
        assert extract_urls(text) == ["http://dup.example", "http://dup.example"]

    def test_no_urls(self):
        assert extract_urls("nothing to see here") == []

    def test_empty_and_none(self):
        assert extract_urls("") == []
        assert extract_urls(None) == []

    def test_url_runs_to_whitespace(self):
        """Trailing punctuation stays attached to the URL."""
        assert extract_urls("go to https://x.example/path?q=1, ok") == ["https://x.example/path?q=1,"]

    def test_other_schemes_ignored(self):
        assert extract_urls("ftp://files.example and www.example.com") == []

    def test_uppercase_scheme_not_matched(self):
        assert extract_urls("HTTP://LOUD.EXAMPLE") == []

    def test_url_across_lines(self):
        assert extract_urls("line one\nhttps://a.example/1\nline three") == ["https://a.example/1"]

