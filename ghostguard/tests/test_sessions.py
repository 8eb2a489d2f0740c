"""Tests for scan sessions and the session registry."""

import threading

import pytest

from ghostguard.errors import SessionNotFound
from ghostguard.schemas.content_schemas import ChatMessage, EmailMessage
from ghostguard.schemas.session_schemas import SessionKind
from ghostguard.schemas.threat_schemas import ThreatSource
from ghostguard.services.event_channel import EventType
from ghostguard.services.session_service import ScanSession, SessionRegistry


class TestContentItems:
    def test_email_preview_truncated(self):
        message = EmailMessage(body="x" * 80)
        assert message.preview == "x" * 50 + "..."

    def test_short_email_preview(self):
        assert EmailMessage(body="short").preview == "short"

    def test_contains_url(self):
        assert ChatMessage(body="see http://a.example").contains_url is True
        assert ChatMessage(body="no links").contains_url is False

    def test_urls_in_dump(self):
        dumped = ChatMessage(body="http://a.example and http://b.example").model_dump()
        assert dumped["urls"] == ["http://a.example", "http://b.example"]


class TestScanSession:
    def test_email_provider_detected(self):
        session = ScanSession(SessionKind.EMAIL, account="bob@outlook.com")
        assert session.provider == "Outlook"
        assert session.source == ThreatSource.EMAIL

    def test_chat_session_has_no_provider(self):
        session = ScanSession(SessionKind.WHATSAPP, account="+15550100")
        assert session.provider is None
        assert session.source == ThreatSource.WHATSAPP

    def test_connect_publishes_status(self):
        session = ScanSession(SessionKind.WHATSAPP)
        sub = session.events.subscribe()
        session.connect()
        event = sub.get()
        assert event.type == EventType.CONNECTION_STATUS
        assert event.data["connected"] is True
        assert session.status().connected is True

    def test_add_item_publishes_new_message(self):
        session = ScanSession(SessionKind.WHATSAPP)
        sub = session.events.subscribe()
        item = session.add_item(ChatMessage(body="hi http://a.example"))
        event = sub.get()
        assert event.type == EventType.NEW_MESSAGE
        assert event.data == {"item_id": item.id, "contains_url": True}

    def test_items_keep_insertion_order(self):
        session = ScanSession(SessionKind.WHATSAPP)
        items = session.add_items([ChatMessage(body=str(i)) for i in range(3)])
        assert [i.id for i in session.items] == [i.id for i in items]

    def test_record_scan(self):
        session = ScanSession(SessionKind.WHATSAPP)
        item = session.add_item(ChatMessage(body="x"))
        assert session.record_scan(item.id, "t1") is True
        assert session.record_scan(item.id, "t1") is True
        assert item.scanned is True
        assert item.threat_ids == ["t1"]

    def test_record_scan_unknown_item(self):
        assert ScanSession(SessionKind.WHATSAPP).record_scan("nope") is False

    def test_teardown_clears_state(self):
        session = ScanSession(SessionKind.WHATSAPP)
        session.connect()
        session.add_item(ChatMessage(body="x"))
        session.cache.claim("http://a.example")
        sub = session.events.subscribe()

        session.teardown()

        assert session.items == []
        assert session.cache.has_scanned("http://a.example") is False
        assert session.connected is False
        assert sub.get().data["connected"] is False
        assert sub.closed is True


class TestSessionRegistry:
    def test_create_and_get(self, registry):
        session = registry.create(SessionKind.EMAIL, account="carol@yahoo.com")
        assert registry.get(session.id) is session
        assert session.connected is True
        assert session.provider == "Yahoo"

    def test_get_unknown(self, registry):
        with pytest.raises(SessionNotFound):
            registry.get("missing")

    def test_teardown_removes(self, registry):
        session = registry.create(SessionKind.WHATSAPP)
        registry.teardown(session.id)
        with pytest.raises(SessionNotFound):
            registry.get(session.id)
        with pytest.raises(SessionNotFound):
            registry.teardown(session.id)

    def test_sessions_have_separate_repositories(self, registry):
        a = registry.create(SessionKind.WHATSAPP)
        b = registry.create(SessionKind.WHATSAPP)
        assert a.threats is not b.threats
        assert a.cache is not b.cache

    def test_shared_repository(self):
        registry = SessionRegistry(shared_threats=True)
        a = registry.create(SessionKind.WHATSAPP)
        b = registry.create(SessionKind.EMAIL)
        assert a.threats is b.threats
        assert a.cache is not b.cache
        registry.teardown_all()

    def test_manual_session_is_reused(self, registry):
        first = registry.manual_session
        assert first.kind == SessionKind.MANUAL
        assert registry.manual_session is first

    def test_manual_session_recreated_after_teardown(self, registry):
        first = registry.manual_session
        registry.teardown(first.id)
        assert registry.manual_session is not first

    def test_manual_session_race(self, registry):
        barrier = threading.Barrier(6)
        seen = []

        def worker():
            barrier.wait()
            seen.append(registry.manual_session)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({s.id for s in seen}) == 1
        assert len([s for s in registry.list() if s.kind == SessionKind.MANUAL]) == 1
