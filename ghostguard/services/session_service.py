"""
Scan sessions.

A session is the lifetime of one connected email account or chat. It owns
the scan cache, the content items and the event channel, and (unless the
repository is shared) the threats found in it. Callers create sessions
through SessionRegistry and pass them into every pipeline call.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ghostguard.config import settings
from ghostguard.errors import SessionNotFound
from ghostguard.schemas.content_schemas import ContentItem
from ghostguard.schemas.session_schemas import ConnectionStatus, SessionKind
from ghostguard.schemas.threat_schemas import ThreatSource
from ghostguard.services.cache_service import ScanCache
from ghostguard.services.email_service import detect_provider
from ghostguard.services.event_channel import EventChannel, EventType
from ghostguard.services.threat_repository import ThreatRepository

logger = logging.getLogger(__name__)


SOURCE_BY_KIND = {
    SessionKind.EMAIL: ThreatSource.EMAIL,
    SessionKind.WHATSAPP: ThreatSource.WHATSAPP,
    SessionKind.MANUAL: ThreatSource.MANUAL,
}


class ScanSession:
    def __init__(
        self,
        kind: SessionKind,
        account: Optional[str] = None,
        threats: Optional[ThreatRepository] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.kind = SessionKind(kind)
        self.account = account
        self.provider = detect_provider(account) if self.kind == SessionKind.EMAIL and account else None
        self.source = SOURCE_BY_KIND[self.kind]

        self.cache = ScanCache()
        self.threats = threats if threats is not None else ThreatRepository()
        self.events = EventChannel(self.id)

        self._items: "OrderedDict[str, ContentItem]" = OrderedDict()
        self._items_lock = threading.RLock()
        self.connected = False
        self.last_sync_time: Optional[datetime] = None

    # ---------------------------------------------------------------- lifecycle

    def connect(self):
        self.connected = True
        self.last_sync_time = datetime.now(timezone.utc)
        self.events.publish(EventType.CONNECTION_STATUS, connected=True, account=self.account)
        logger.info(f"Session {self.id} ({self.kind.value}) connected")

    def teardown(self):
        """Disconnect: forget items and scanned URLs, close subscriptions."""
        self.connected = False
        with self._items_lock:
            self._items.clear()
        self.cache.clear()
        self.events.publish(EventType.CONNECTION_STATUS, connected=False, account=self.account)
        self.events.close()
        logger.info(f"Session {self.id} ({self.kind.value}) torn down")

    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            session_id=self.id,
            kind=self.kind,
            connected=self.connected,
            account=self.account,
            provider=self.provider,
            last_sync_time=self.last_sync_time,
            items=len(self._items),
            cache=self.cache.stats(),
        )

    # -------------------------------------------------------------------- items

    def add_item(self, item: ContentItem) -> ContentItem:
        with self._items_lock:
            self._items[item.id] = item
        self.last_sync_time = datetime.now(timezone.utc)
        self.events.publish(EventType.NEW_MESSAGE, item_id=item.id, contains_url=item.contains_url)
        return item

    def add_items(self, items: Iterable[ContentItem]) -> List[ContentItem]:
        return [self.add_item(item) for item in items]

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        with self._items_lock:
            return self._items.get(item_id)

    @property
    def items(self) -> List[ContentItem]:
        with self._items_lock:
            return list(self._items.values())

    def record_scan(self, item_id: str, threat_id: Optional[str] = None) -> bool:
        """
        Mark an item scanned and attach a threat id, as one atomic update.

        Returns False when the item is not part of this session.
        """
        with self._items_lock:
            item = self._items.get(item_id)
            if item is None:
                return False
            item.scanned = True
            if threat_id and threat_id not in item.threat_ids:
                item.threat_ids.append(threat_id)
        return True


class SessionRegistry:
    """Creates, looks up and tears down sessions."""

    def __init__(self, shared_threats: Optional[bool] = None):
        if shared_threats is None:
            shared_threats = settings.shared_threat_repository
        self._shared = ThreatRepository() if shared_threats else None
        self._lock = threading.Lock()
        self._sessions: Dict[str, ScanSession] = {}
        self._manual_id: Optional[str] = None

    def create(self, kind: SessionKind, account: Optional[str] = None) -> ScanSession:
        session = ScanSession(kind, account=account, threats=self._shared)
        with self._lock:
            self._sessions[session.id] = session
        session.connect()
        return session

    def get(self, session_id: str) -> ScanSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def teardown(self, session_id: str) -> ScanSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is not None and session_id == self._manual_id:
                self._manual_id = None
        if session is None:
            raise SessionNotFound(session_id)
        session.teardown()
        return session

    @property
    def manual_session(self) -> ScanSession:
        """Long-lived session for manually submitted URLs and API scans."""
        with self._lock:
            if self._manual_id is not None:
                return self._sessions[self._manual_id]
        session = self.create(SessionKind.MANUAL)
        with self._lock:
            if self._manual_id is None:
                self._manual_id = session.id
                return session
            # Lost a creation race; keep the first one
            self._sessions.pop(session.id, None)
            winner = self._sessions[self._manual_id]
        session.teardown()
        return winner

    def list(self) -> List[ScanSession]:
        with self._lock:
            return list(self._sessions.values())

    def teardown_all(self):
        for session in self.list():
            self.teardown(session.id)
