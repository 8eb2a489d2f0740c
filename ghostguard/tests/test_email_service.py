"""Tests for .eml ingestion."""

import pytest

from ghostguard.services.email_service import (
    detect_provider,
    email_message_from_bytes,
    html_to_text,
    parse_email_bytes,
)


PLAIN_EMAIL = b"""From: Security Team <alerts@bank-secure.example>
To: alice@gmail.com
Subject: Verify your account
Date: Mon, 05 Oct 2026 10:00:00 +0000
Content-Type: text/plain; charset="utf-8"

Your account is locked. Verify at http://evil.example/login within 24 hours.
"""

MULTIPART_EMAIL = b"""From: promo@shop.example
To: alice@gmail.com
Subject: You won
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="XYZ"

--XYZ
Content-Type: text/html; charset="utf-8"

<html><body><p>Claim your <a href="http://offer.example/prize">prize</a> &amp; more</p></body></html>
--XYZ
Content-Type: application/pdf
Content-Disposition: attachment; filename="invoice.pdf"
Content-Transfer-Encoding: base64

SGVsbG8=
--XYZ--
"""


class TestDetectProvider:
    @pytest.mark.parametrize(
        "address,expected",
        [
            ("a@gmail.com", "Gmail"),
            ("a@outlook.com", "Outlook"),
            ("a@hotmail.co.uk", "Outlook"),
            ("a@yahoo.com", "Yahoo"),
            ("a@company.example", "company.example"),
            ("not-an-address", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_provider(self, address, expected):
        assert detect_provider(address) == expected


class TestParseEmail:
    def test_plain_email(self):
        parsed = parse_email_bytes(PLAIN_EMAIL)
        assert parsed["subject"] == "Verify your account"
        assert "alerts@bank-secure.example" in parsed["from"]
        assert parsed["date"] is not None
        assert parsed["urls"] == ["http://evil.example/login"]
        assert parsed["attachments"] == []

    def test_html_with_attachment(self):
        parsed = parse_email_bytes(MULTIPART_EMAIL)
        assert parsed["body_text"] == ""
        assert "http://offer.example/prize" in parsed["urls"]
        assert parsed["attachments"] == [
            {"filename": "invoice.pdf", "content_type": "application/pdf", "size": 5}
        ]

    def test_html_to_text_surfaces_links(self):
        text = html_to_text('<a href="https://x.example/a">click</a> &amp;')
        assert "https://x.example/a" in text
        assert "&" in text
        assert "<a" not in text

    def test_email_message_from_bytes(self):
        message = email_message_from_bytes(PLAIN_EMAIL)
        assert message.kind == "email"
        assert message.subject == "Verify your account"
        assert message.contains_url is True
        assert message.preview.endswith("...")
