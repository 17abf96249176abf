"""
Brief end matter: sources/reading lists and the criteria grid that follow
the last task. Their headings also terminate task scanning.
"""

import re
from typing import Optional

from docextract.schemas.drafts import EndMatter

END_MATTER_HEADINGS: list[tuple[str, re.Pattern]] = [
    ("sources_block", re.compile(r"^Sources\s+of\s+information", re.I)),
    ("sources_block", re.compile(r"^Textbooks?", re.I)),
    ("sources_block", re.compile(r"^Websites?", re.I)),
    ("sources_block", re.compile(r"^Further\s+reading", re.I)),
    ("sources_block", re.compile(r"^Additional\s+resources?", re.I)),
    ("criteria_block", re.compile(r"^Relevant Learning Outcomes", re.I)),
    ("criteria_block", re.compile(r"^Assessment Criteria", re.I)),
    ("criteria_block", re.compile(r"^Pass Merit Distinction", re.I)),
]


def end_matter_key(line: str) -> Optional[str]:
    trimmed = (line or "").strip()
    if not trimmed:
        return None
    return next((key for key, rx in END_MATTER_HEADINGS if rx.search(trimmed)), None)


def extract_end_matter(pages: list[str]) -> Optional[EndMatter]:
    """Collect lines under each end-matter heading; None when neither block is present."""
    blocks: dict[str, list[str]] = {}
    current: Optional[str] = None
    for page in pages:
        for line in page.replace("\r", "").split("\n"):
            if not line.strip():
                continue
            key = end_matter_key(line)
            if key:
                current = key
                blocks.setdefault(key, [])
            if current:
                blocks[current].append(line.strip())

    sources = "\n".join(blocks.get("sources_block", [])).strip() or None
    criteria = "\n".join(blocks.get("criteria_block", [])).strip() or None
    if not sources and not criteria:
        return None
    return EndMatter(sources_block=sources, criteria_block=criteria)
