# backend/app/domain/findings.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

URGENT = "URGENT"
HIGH = "HIGH"

CRITICAL_KEYWORDS = (
    "critical",
    "urgent",
    "immediate",
    "safety hazard",
    "emergency",
    "severe",
    "dangerous",
)


@dataclass(frozen=True)
class FindingRule:
    """
    One row of the priority table.

    `pattern` is matched against the trimmed line. When `strip_marker` is set the
    rule is an explicit prefix marker and the named group `rest` becomes the
    description; otherwise the whole line is the description.
    """

    name: str
    pattern: re.Pattern[str]
    priority: str
    strip_marker: bool = False


def _marker(word: str) -> re.Pattern[str]:
    # "URGENT: ...", "[URGENT] ...", "[URGENT]: ..."
    return re.compile(rf"^(?:\[\s*{word}\s*\]\s*:?|{word}\s*:)\s*(?P<rest>.*)$", re.IGNORECASE)


def _keywords(words: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)


# Order matters: first matching rule wins.
FINDING_RULES: list[FindingRule] = [
    FindingRule(name="urgent_marker", pattern=_marker("URGENT"), priority=URGENT, strip_marker=True),
    FindingRule(name="high_marker", pattern=_marker("HIGH"), priority=HIGH, strip_marker=True),
    FindingRule(name="critical_keyword", pattern=_keywords(CRITICAL_KEYWORDS), priority=HIGH),
]


@dataclass(frozen=True)
class ParsedFinding:
    priority: str
    description: str

    def as_dict(self) -> dict:
        return {"priority": self.priority, "description": self.description}


def classify_line(line: str, rules: list[FindingRule] | None = None) -> Optional[ParsedFinding]:
    text = (line or "").strip()
    if not text:
        return None

    for rule in rules if rules is not None else FINDING_RULES:
        if rule.strip_marker:
            m = rule.pattern.match(text)
            if m:
                return ParsedFinding(priority=rule.priority, description=m.group("rest").strip() or text)
        elif rule.pattern.search(text):
            return ParsedFinding(priority=rule.priority, description=text)
    return None


def parse_findings(findings_text: str | None, rules: list[FindingRule] | None = None) -> list[ParsedFinding]:
    """
    Turn free-text findings into prioritized follow-up candidates.
    One candidate per non-blank line at most, in input order. Never raises.
    """
    if not findings_text or not isinstance(findings_text, str):
        return []

    out: list[ParsedFinding] = []
    for line in findings_text.splitlines():
        parsed = classify_line(line, rules)
        if parsed is not None:
            out.append(parsed)
    return out
