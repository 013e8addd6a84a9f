"""Classify pasted crash reports, ANR traces and performance symptoms.

Used by ``/diagnose`` to pick the issue type and platform when the user pastes
raw input instead of naming them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

ISSUE_TYPES = ["crash", "anr", "hang", "memory", "performance", "startup", "network"]

# Ordered: the first type whose signatures match wins, so the more specific
# symptoms (ANR, watchdog hangs, OOM) come before generic crashes.
_TYPE_SIGNATURES: List[tuple] = [
    ("anr", [r"\bANR in\b", r"Application Not Responding", r"Input dispatching timed out", r"\bANR\b"]),
    ("hang", [r"0x8badf00d", r"\bhang(s|ing)?\b", r"watchdog", r"main thread (was )?blocked", r"\bfreez(e|es|ing)\b"]),
    ("memory", [r"OutOfMemoryError", r"\bOOM\b", r"jetsam", r"EXC_RESOURCE", r"memory (leak|pressure|warning)", r"didReceiveMemoryWarning"]),
    ("startup", [r"cold start", r"warm start", r"\bTTID\b", r"\bTTFD\b", r"time to (initial|full) display", r"app launch", r"\bstartup (time|latency|is slow)\b", r"\bslow startup\b"]),
    ("performance", [r"Choreographer", r"(dropped|skipped) \d* ?frames", r"\bjank\b", r"slow (frames|rendering)", r"frozen frames", r"\bfps\b", r"hitch(es)?"]),
    ("network", [r"SocketTimeoutException", r"NSURLErrorDomain", r"UnknownHostException", r"SSLHandshakeException", r"timed out", r"HTTP \d{3}"]),
    ("crash", [r"EXC_BAD_ACCESS", r"EXC_CRASH", r"EXC_BREAKPOINT", r"\bSIG(SEGV|ABRT|BUS|ILL|TRAP)\b", r"FATAL EXCEPTION",
               r"Exception in thread", r"\w+(Exception|Error):", r"Thread \d+ Crashed", r"Fatal error:", r"Unhandled Exception", r"\bcrash(es|ed|ing)?\b"]),
]

_PLATFORM_SIGNATURES: List[tuple] = [
    ("react-native", [r"RCTFatal", r"\bhermes\b", r"index\.android\.bundle", r"main\.jsbundle", r"ReactNativeJS", r"com\.facebook\.react"]),
    ("flutter", [r"dart:\w+", r"package:flutter/", r"\bFlutterError\b", r"\.dart:\d+"]),
    ("android", [r"\bat (java|android|androidx|kotlin|com|org)\.[\w.$]+\(", r"java\.lang\.\w+", r"FATAL EXCEPTION", r"ANR in", r"Choreographer", r"\bkotlinx?\.\w+"]),
    ("ios", [r"EXC_BAD_ACCESS", r"EXC_\w+", r"Thread \d+ Crashed", r"libswiftCore", r"libsystem_kernel", r"UIKitCore", r"0x8badf00d", r"jetsam", r"Fatal error:", r"\.swift:\d+"]),
]


@dataclass
class IssueClassification:
    type: str
    platform: Optional[str]
    signals: List[str] = field(default_factory=list)

    def as_query(self) -> str:
        return " ".join([self.type] + self.signals)


def _first_match(text: str, table: List[tuple]) -> tuple:
    for name, patterns in table:
        hits = []
        for pattern in patterns:
            m = re.search(pattern, text, flags=re.IGNORECASE)
            if m:
                hits.append(m.group(0))
        if hits:
            return name, hits
    return None, []


def classify_issue(text: Optional[str]) -> IssueClassification:
    """Guess the issue type and platform from free text, stack traces or logs."""
    if not text or not text.strip():
        return IssueClassification(type="unknown", platform=None)

    issue_type, type_hits = _first_match(text, _TYPE_SIGNATURES)
    platform, platform_hits = _first_match(text, _PLATFORM_SIGNATURES)

    signals: List[str] = []
    for hit in type_hits + platform_hits:
        if hit not in signals:
            signals.append(hit)
    return IssueClassification(type=issue_type or "unknown", platform=platform, signals=signals[:8])


__all__ = ["ISSUE_TYPES", "IssueClassification", "classify_issue"]
