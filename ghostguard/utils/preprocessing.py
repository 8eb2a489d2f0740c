import re
from typing import List, Optional


# Scheme followed by everything up to the next whitespace
URL_PATTERN = re.compile(r"https?://\S+")


def extract_urls(text: Optional[str]) -> List[str]:
    """
    Pull URL substrings out of free text, in order of appearance.

    Duplicates are kept; deduplication happens at the scan cache.
    """
    if not text:
        return []
    return URL_PATTERN.findall(text)
