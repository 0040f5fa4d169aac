"""
Readiness detection.

Decides from the assistant's free-text reply whether information collection
is complete. The orchestrator only depends on the ReadinessDetector
protocol, so the detection strategy can be swapped.
"""
import re
from dataclasses import dataclass
from typing import Optional, Protocol

DEFAULT_SENTINEL = "[READY]"

# Replies announcing a (re-)search count as ready even without the sentinel
DEFAULT_RETRY_PATTERN = (
    r"let me (?:search|look) again|search again|"
    r"다시.*찾아볼게요|다시.*추천|재검색"
)


@dataclass
class Readiness:
    ready: bool
    clean_reply: str


class ReadinessDetector(Protocol):
    def detect(self, reply: str) -> Readiness:
        ...


class SentinelReadiness:
    """Ready when the reply carries the sentinel or announces a re-search."""

    def __init__(self, sentinel: str = DEFAULT_SENTINEL, retry_pattern: Optional[str] = DEFAULT_RETRY_PATTERN):
        self.sentinel = sentinel
        self.retry_re = re.compile(retry_pattern, re.IGNORECASE) if retry_pattern else None

    def detect(self, reply: str) -> Readiness:
        text = reply or ""
        ready = self.sentinel in text
        if not ready and self.retry_re is not None:
            ready = self.retry_re.search(text) is not None

        # The sentinel never reaches the user, ready or not
        clean = re.sub(r"[ \t]{2,}", " ", text.replace(self.sentinel, "")).strip()
        return Readiness(ready=ready, clean_reply=clean)
