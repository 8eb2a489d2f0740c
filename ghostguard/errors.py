"""
Error taxonomy for the scan pipeline.

Only contract errors (InvalidRequest and the lookup/transition errors) are
meant to reach callers. AIUnavailable and MalformedAIResponse are raised
inside the pipeline and recovered there.
"""


class GhostGuardError(Exception):
    """Base class for all GhostGuard errors."""


class InvalidRequest(GhostGuardError, ValueError):
    """The AI classifier was called without exactly one of url/content."""


class AIUnavailable(GhostGuardError, RuntimeError):
    """The inference endpoint could not be reached (network, timeout, API error)."""


class MalformedAIResponse(GhostGuardError, ValueError):
    """The model replied, but not with the expected JSON shape."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class SessionNotFound(GhostGuardError, LookupError):
    def __init__(self, session_id: str):
        super().__init__(f"Unknown session '{session_id}'")
        self.session_id = session_id


class ThreatNotFound(GhostGuardError, LookupError):
    def __init__(self, threat_id: str):
        super().__init__(f"Unknown threat '{threat_id}'")
        self.threat_id = threat_id


class InvalidStatusTransition(GhostGuardError, ValueError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move threat from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested
