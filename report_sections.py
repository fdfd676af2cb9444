"""
Report section validation.

The portfolio report comes back from the model as loosely formatted text that
should contain eight numbered sections:

    1. *Summary & Portfolio Characteristics*
    2. *Goal Alignment Grade*
    ...
    8. *Asset Allocation Breakdown*

Headings are matched by keywords, not exact titles, since the model rewords
them freely. Anything before the first section heading is dropped.

Usage:
    from report_sections import validate_report, scan_report

    text = validate_report(raw_text)
    report = scan_report(raw_text)
    if report.is_empty:
        ...  # nothing recognizable, show raw text instead
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SECTION_COUNT = 8

# Keyword patterns per section index, matched against the stripped line
EXPECTED_SECTIONS = [
    re.compile(r"^1\.\s*\*.*Summary.*Portfolio.*\*", re.IGNORECASE),
    re.compile(r"^2\.\s*\*.*Goal.*Alignment.*Grade.*\*", re.IGNORECASE),
    re.compile(r"^3\.\s*\*.*Goal.*Alignment.*Percentage.*\*", re.IGNORECASE),
    re.compile(r"^4\.\s*\*.*Risk.*Meter.*\*", re.IGNORECASE),
    re.compile(r"^5\.\s*\*.*Estimated.*5.*Year.*Return.*\*", re.IGNORECASE),
    re.compile(r"^6\.\s*\*.*Where.*Strong.*\*", re.IGNORECASE),
    re.compile(r"^7\.\s*\*.*Where.*Improve.*\*", re.IGNORECASE),
    re.compile(r"^8\.\s*\*.*Asset.*Allocation.*Breakdown.*\*", re.IGNORECASE),
]

SECTION_TITLES = {
    1: "Summary & Portfolio Characteristics",
    2: "Goal Alignment Grade",
    3: "Goal Alignment Percentage",
    4: "Risk Meter",
    5: "Estimated 5-Year Return",
    6: "Where You Are Strong",
    7: "Where You Need to Improve",
    8: "Asset Allocation Breakdown",
}

_TITLE_RE = re.compile(r"^\d\.\s*\*+(.*?)\*+")


def _normalize(text: Optional[str]) -> str:
    return (text or "").replace("\r\n", "\n").strip()


def match_section_heading(line: str) -> Optional[int]:
    """Return the section index (1-8) whose heading pattern matches ``line``."""
    trimmed = line.strip()
    for idx, pattern in enumerate(EXPECTED_SECTIONS, start=1):
        if pattern.search(trimmed):
            return idx
    return None


def _heading_title(line: str, index: int) -> str:
    m = _TITLE_RE.match(line.strip())
    title = m.group(1).strip() if m else ""
    return title or SECTION_TITLES[index]


@dataclass
class Section:
    """One numbered block of the report."""
    index: int
    title: str
    heading: str
    body: List[str] = field(default_factory=list)

    @property
    def body_text(self) -> str:
        return "\n".join(self.body)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "title": self.title,
            "body": self.body_text.strip(),
        }


@dataclass
class Report:
    """Sections recognized in a report, in strictly increasing index order."""
    sections: List[Section] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sections

    @property
    def is_complete(self) -> bool:
        return self.indices == list(range(1, SECTION_COUNT + 1))

    @property
    def indices(self) -> List[int]:
        return [s.index for s in self.sections]

    @property
    def missing(self) -> List[int]:
        return [i for i in range(1, SECTION_COUNT + 1) if i not in self.indices]

    def to_text(self) -> str:
        lines: List[str] = []
        for s in self.sections:
            lines.append(s.heading)
            lines.extend(s.body)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "missing": self.missing,
        }


class SectionValidator:
    """
    Cursor walk over the report lines.

    Only the heading for the section the cursor is waiting on starts a
    section; once section 1 is found every following line is kept verbatim,
    including headings that arrive out of order.
    """

    def validate(self, raw_text: Optional[str]) -> str:
        lines = _normalize(raw_text).split("\n")
        cleaned: List[str] = []
        cursor = 0
        found_start = False

        for line in lines:
            trimmed = line.strip()
            if not found_start and not trimmed:
                continue
            if cursor < SECTION_COUNT and EXPECTED_SECTIONS[cursor].search(trimmed):
                found_start = True
                cursor += 1
                cleaned.append(line)
            elif found_start:
                cleaned.append(line)

        return "\n".join(cleaned).strip()

    def scan(self, raw_text: Optional[str]) -> Report:
        """Validate ``raw_text`` and split it into sections."""
        text = self.validate(raw_text)
        if not text:
            return Report()
        lines = text.split("\n")
        matches = [match_section_heading(line) for line in lines]

        # Indices that still appear as a heading at or after each line
        remaining: List[set] = [set() for _ in range(len(lines) + 1)]
        for i in range(len(lines) - 1, -1, -1):
            remaining[i] = set(remaining[i + 1])
            if matches[i] is not None:
                remaining[i].add(matches[i])

        sections: List[Section] = []
        cursor = 1
        for i, line in enumerate(lines):
            k = matches[i]
            opens = False
            if k is not None and k >= cursor:
                skipped = set(range(cursor, k))
                opens = not (skipped & remaining[i + 1])
            if opens:
                sections.append(Section(index=k, title=_heading_title(line, k), heading=line))
                cursor = k + 1
            elif sections:
                sections[-1].body.append(line)

        return Report(sections=sections)


_default_validator = SectionValidator()


def validate_report(raw_text: Optional[str]) -> str:
    return _default_validator.validate(raw_text)


def scan_report(raw_text: Optional[str]) -> Report:
    return _default_validator.scan(raw_text)
