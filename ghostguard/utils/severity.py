"""
Severity and category utilities.
Maps a 0-100 AI confidence score onto severity bands and threat categories.
"""

from ghostguard.schemas.threat_schemas import ThreatCategory, ThreatLevel


# Band lower bounds (inclusive)
CRITICAL_THRESHOLD = 80
HIGH_THRESHOLD = 60
MEDIUM_THRESHOLD = 30

# A Threat is only created strictly above this score
THREAT_CREATION_THRESHOLD = 30


def get_threat_level(score: float) -> ThreatLevel:
    """
    Derive the severity band purely from score.

    Args:
        score: Confidence score (0-100)

    Returns:
        ThreatLevel.CRITICAL, HIGH, MEDIUM or LOW
    """
    if score >= CRITICAL_THRESHOLD:
        return ThreatLevel.CRITICAL
    elif score >= HIGH_THRESHOLD:
        return ThreatLevel.HIGH
    elif score >= MEDIUM_THRESHOLD:
        return ThreatLevel.MEDIUM
    else:
        return ThreatLevel.LOW


def derive_category(score: float, analysis_text: str) -> ThreatCategory:
    """
    Derive the threat category from score and the AI analysis text.

    Textual evidence only breaks the tie in the top band: above 80 the
    analysis decides between phishing and malware.
    """
    if score > 80:
        if "phish" in (analysis_text or "").lower():
            return ThreatCategory.PHISHING
        return ThreatCategory.MALWARE
    elif score > 60:
        return ThreatCategory.SCAM
    elif score < 30:
        return ThreatCategory.SAFE
    return ThreatCategory.SUSPICIOUS


def should_create_threat(score: float) -> bool:
    return score > THREAT_CREATION_THRESHOLD
