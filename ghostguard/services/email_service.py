"""
Email (.eml) ingestion service.
Turns raw RFC 822 messages into EmailMessage content items for a session.
"""

import html
import re
from datetime import datetime, timezone
from email import policy
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

from fastapi import UploadFile

from ghostguard.schemas.content_schemas import EmailMessage
from ghostguard.utils.preprocessing import extract_urls


_HREF_PATTERN = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")

KNOWN_PROVIDERS = [
    ("gmail", "Gmail"),
    ("outlook", "Outlook"),
    ("hotmail", "Outlook"),
    ("yahoo", "Yahoo"),
]


def detect_provider(address: Optional[str]) -> str:
    """Mail provider display name from an address's domain."""
    if not address or "@" not in address:
        return "unknown"
    domain = address.rsplit("@", 1)[1].strip().lower()
    if not domain:
        return "unknown"
    for marker, name in KNOWN_PROVIDERS:
        if marker in domain:
            return name
    return domain


def html_to_text(body_html: str) -> str:
    """
    Flatten an HTML body for URL extraction.
    Link targets are surfaced as plain text so the extractor sees them.
    """
    hrefs = " ".join(_HREF_PATTERN.findall(body_html))
    text = _TAG_PATTERN.sub(" ", body_html)
    return html.unescape(f"{text} {hrefs}")


def parse_email_bytes(email_bytes: bytes) -> Dict[str, Any]:
    """
    Parse an email from bytes and extract relevant content.

    Returns:
        {
            "subject": str,
            "from": str,
            "date": datetime | None,
            "body_text": str,
            "body_html": str,
            "urls": [str, ...],
            "attachments": [{"filename": str, "content_type": str, "size": int}, ...],
        }
    """
    msg = BytesParser(policy=policy.default).parsebytes(email_bytes)

    subject = str(msg.get("Subject", "") or "")
    from_addr = str(msg.get("From", "") or "")
    date = None
    if msg.get("Date"):
        try:
            date = parsedate_to_datetime(str(msg.get("Date")))
        except (TypeError, ValueError):
            date = None

    body_text = ""
    body_html = ""
    attachments = []

    if msg.is_multipart():
        for part in msg.walk():
            content_type = part.get_content_type()
            content_disposition = str(part.get("Content-Disposition", ""))

            if "attachment" in content_disposition:
                payload = part.get_payload(decode=True)
                attachments.append({
                    "filename": part.get_filename() or "unknown",
                    "content_type": content_type,
                    "size": len(payload) if payload else 0,
                })
            elif content_type == "text/plain":
                payload = part.get_payload(decode=True)
                if payload:
                    body_text += payload.decode("utf-8", errors="ignore")
            elif content_type == "text/html":
                payload = part.get_payload(decode=True)
                if payload:
                    body_html += payload.decode("utf-8", errors="ignore")
    else:
        content_type = msg.get_content_type()
        payload = msg.get_payload(decode=True)
        if payload:
            if content_type == "text/html":
                body_html = payload.decode("utf-8", errors="ignore")
            else:
                body_text = payload.decode("utf-8", errors="ignore")

    return {
        "subject": subject,
        "from": from_addr,
        "date": date,
        "body_text": body_text,
        "body_html": body_html,
        "urls": extract_urls(get_scannable_text(body_text, body_html)),
        "attachments": attachments,
    }


def get_scannable_text(body_text: str, body_html: str) -> str:
    """Plain-text body when there is one, otherwise the flattened HTML body."""
    if body_text.strip():
        return body_text
    if body_html:
        return html_to_text(body_html)
    return ""


def email_message_from_bytes(email_bytes: bytes) -> EmailMessage:
    parsed = parse_email_bytes(email_bytes)
    return EmailMessage(
        sender=parsed["from"],
        subject=parsed["subject"],
        body=get_scannable_text(parsed["body_text"], parsed["body_html"]),
        timestamp=parsed["date"] or datetime.now(timezone.utc),
    )


async def parse_email_file(upload_file: UploadFile) -> EmailMessage:
    """Parse an uploaded .eml file into a content item."""
    data = await upload_file.read()
    return email_message_from_bytes(data)
