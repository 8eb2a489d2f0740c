"""
In-memory Threat repository.
Append on detection; only the status field ever changes afterwards.
"""

import logging
import threading
from typing import Dict, List, Optional

from ghostguard.errors import InvalidStatusTransition, ThreatNotFound
from ghostguard.schemas.threat_schemas import (
    Threat,
    ThreatCategory,
    ThreatLevel,
    ThreatSource,
    ThreatStats,
    ThreatStatus,
)

logger = logging.getLogger(__name__)


# Operator-driven targets; nothing moves a threat back to ACTIVE
ALLOWED_STATUS_TARGETS = {ThreatStatus.INVESTIGATING, ThreatStatus.MITIGATED}


class ThreatRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._threats: Dict[str, Threat] = {}

    def add(self, threat: Threat) -> Threat:
        with self._lock:
            if threat.id in self._threats:
                raise ValueError(f"Threat '{threat.id}' already stored")
            self._threats[threat.id] = threat
        logger.debug(f"Stored threat {threat.id} for {threat.url}")
        return threat

    def get(self, threat_id: str) -> Threat:
        with self._lock:
            threat = self._threats.get(threat_id)
        if threat is None:
            raise ThreatNotFound(threat_id)
        return threat

    def list(
        self,
        status: Optional[ThreatStatus] = None,
        source: Optional[ThreatSource] = None,
        category: Optional[ThreatCategory] = None,
    ) -> List[Threat]:
        """Threats in insertion order, optionally filtered."""
        with self._lock:
            threats = list(self._threats.values())
        if status is not None:
            threats = [t for t in threats if t.status == status]
        if source is not None:
            threats = [t for t in threats if t.source == source]
        if category is not None:
            threats = [t for t in threats if t.category == category]
        return threats

    def update_status(self, threat_id: str, status: ThreatStatus | str) -> Threat:
        """
        Move a threat to INVESTIGATING or MITIGATED.

        Raises:
            ThreatNotFound: unknown id
            InvalidStatusTransition: target is ACTIVE (or not a status)
        """
        with self._lock:
            threat = self._threats.get(threat_id)
            if threat is None:
                raise ThreatNotFound(threat_id)
            try:
                target = ThreatStatus(status)
            except ValueError:
                raise InvalidStatusTransition(threat.status.value, str(status))
            if target == threat.status:
                return threat
            if target not in ALLOWED_STATUS_TARGETS:
                raise InvalidStatusTransition(threat.status.value, target.value)
            threat.status = target

        logger.info(f"Threat {threat_id} status -> {target.value}")
        return threat

    def stats(self) -> ThreatStats:
        stats = ThreatStats()
        for threat in self.list():
            stats.total += 1
            if threat.level == ThreatLevel.CRITICAL:
                stats.critical += 1
            elif threat.level == ThreatLevel.HIGH:
                stats.high += 1
            elif threat.level == ThreatLevel.MEDIUM:
                stats.medium += 1
            else:
                stats.low += 1
            if threat.status == ThreatStatus.MITIGATED:
                stats.mitigated += 1
        return stats

    def clear(self):
        with self._lock:
            self._threats.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._threats)

    def __contains__(self, threat_id: str) -> bool:
        with self._lock:
            return threat_id in self._threats
