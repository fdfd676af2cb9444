"""Section 8 (Asset Allocation Breakdown) table extraction."""

import re
from dataclasses import dataclass
from typing import Dict, List

from report_sections import EXPECTED_SECTIONS

ASSET_SECTION_INDEX = 8
ASSET_COLUMNS = ("name", "type", "invested_amount", "current_value")

_ANY_HEADING_RE = re.compile(r"^\d\.\s*\*")
_DIVIDER_CELL_RE = re.compile(r"^:?-+:?$")


@dataclass
class AssetRow:
    name: str
    type: str
    invested_amount: str
    current_value: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "type": self.type,
            "invested_amount": self.invested_amount,
            "current_value": self.current_value,
        }


def extract_asset_breakdown(report_text: str) -> str:
    """Return the body of section 8, up to the next numbered heading."""
    lines = (report_text or "").split("\n")
    heading = EXPECTED_SECTIONS[ASSET_SECTION_INDEX - 1]
    start = next((i for i, line in enumerate(lines) if heading.search(line.strip())), -1)
    if start == -1:
        return ""
    end = len(lines)
    for i in range(start + 1, len(lines)):
        if _ANY_HEADING_RE.match(lines[i]):
            end = i
            break
    return "\n".join(lines[start + 1:end])


def _is_divider(line: str) -> bool:
    if "----" in line:
        return True
    cells = [c.strip() for c in line.split("|") if c.strip()]
    return bool(cells) and all(_DIVIDER_CELL_RE.match(c) for c in cells)


def parse_assets(text: str) -> List[AssetRow]:
    """
    Parse markdown-ish table rows into AssetRow objects.

    Model-written tables are noisy; any line that does not split into exactly
    four non-empty cells is skipped.
    """
    rows = [line.strip() for line in (text or "").split("\n")]
    rows = [
        line for line in rows
        if line
        and "|" in line
        and "asset name" not in line.lower()
        and not _is_divider(line)
    ]

    parsed: List[AssetRow] = []
    for row in rows:
        cells = [c.strip() for c in row.split("|") if c.strip()]
        if len(cells) == len(ASSET_COLUMNS):
            parsed.append(AssetRow(*cells))
    return parsed


def extract_assets(report_text: str) -> List[AssetRow]:
    return parse_assets(extract_asset_breakdown(report_text))
