"""
Task extraction for assignment briefs.

Lines are tagged with their page, footers are dropped and scanning stops
at the first end-matter heading. Headings must be "Task <n>" near the start
of a line; a "Task" word with its number on the next line is merged first.
Heading numbers must not decrease; repeats and regressions are dropped
(first occurrence wins). Each task's body is everything up to the next
kept heading.
"""

import re
from typing import NamedTuple, Optional

from pydantic import BaseModel

from docextract.models.enums import TaskConfidence
from docextract.parsers.brief_parts import extract_parts
from docextract.parsers.end_matter import end_matter_key, extract_end_matter
from docextract.parsers.table_blocks import detect_table_blocks
from docextract.pipeline.text_normalizer import normalize_whitespace
from docextract.schemas.drafts import EndMatter, TaskDraft

TASK_HEADING = re.compile(r"^\s*[^A-Za-z0-9]{0,3}Task\s*(\d{1,2})\b", re.I)
TASK_WORD_ONLY = re.compile(r"^task$", re.I)
SPACED_TASK = re.compile(r"\bt\s*a\s*s\s*k\b", re.I)
SPACED_TASK_WITH_NUMBER = re.compile(r"\bt\s*a\s*s\s*k\s*\d", re.I)
AIAS = re.compile(r"\bAIAS\s*(\d)\b", re.I)
INITIAL_PROPOSAL = re.compile(r"Initial Idea Proposal", re.I)

FOOTER_PATTERNS = [
    re.compile(r"©\s*\d{4}\s*unicourse.*all rights reserved", re.I),
    re.compile(r"\bissue\s*\d+\s*[-–]?\s*\d{4}\s*/\s*\d{2}\b", re.I),
    re.compile(r"\bpage\s*\d+\s*of\s*\d+\b", re.I),
]

LOOKBACK_BEFORE_TASK_ONE = 10
AIAS_PREVIEW_LINES = 6
NO_HEADINGS_WARNING = "Task headings not found (expected “Task 1”, “Task 2”, …)."


class PageLine(NamedTuple):
    line: str
    page: int


class Heading(NamedTuple):
    index: int
    n: int
    title: Optional[str]
    page: int
    raw: str


class TasksResult(BaseModel):
    tasks: list[TaskDraft] = []
    warnings: list[str] = []
    end_matter: Optional[EndMatter] = None


def is_footer_line(line: str) -> bool:
    normalized = normalize_whitespace(line).lower()
    return bool(normalized) and any(p.search(normalized) for p in FOOTER_PATTERNS)


def _split_lines(text: str) -> list[str]:
    return (text or "").replace("\r", "").split("\n")


def _clean_body(lines: list[str]) -> list[str]:
    cleaned = [re.sub(r"[  ]+$", "", line.replace("\t", "  ")) for line in lines]
    while cleaned and not cleaned[0].strip():
        cleaned.pop(0)
    while cleaned and not cleaned[-1].strip():
        cleaned.pop()
    return cleaned


def parse_heading(raw: str) -> Optional[tuple[int, Optional[str]]]:
    """(n, title) for a 'Task n' heading line; n must be ≥ 1."""
    m = TASK_HEADING.match(raw or "")
    if not m:
        return None
    n = int(m.group(1))
    if n < 1:
        return None
    remainder = raw[m.end():]
    remainder = re.sub(r"^\s*\(.*?\)\s*", "", remainder)
    remainder = re.sub(r"^\s*[:\-–—]\s*", "", remainder).strip()
    return n, normalize_whitespace(remainder) or None


def _tag_lines(pages: list[str], paged: bool) -> list[PageLine]:
    tagged: list[PageLine] = []
    for idx, page_text in enumerate(pages):
        page_number = idx + 1 if paged else 1
        lines = _split_lines(page_text)
        i = 0
        while i < len(lines):
            line = re.sub(r"\s+", " ", lines[i]).strip()
            if end_matter_key(line):
                return tagged
            nxt = re.sub(r"\s+", " ", lines[i + 1]).strip() if i + 1 < len(lines) else ""
            word_only = TASK_WORD_ONLY.match(line) or (
                SPACED_TASK.search(line) and not SPACED_TASK_WITH_NUMBER.search(line)
            )
            if word_only and nxt and re.match(r"^\d{1,2}\b", nxt):
                tagged.append(PageLine(f"Task {nxt}".strip(), page_number))
                i += 2
                continue
            tagged.append(PageLine(line, page_number))
            i += 1
    return tagged


def _ordered_headings(tagged: list[PageLine]) -> list[Heading]:
    start = 0
    for i, item in enumerate(tagged):
        parsed = parse_heading(item.line)
        if parsed and parsed[0] == 1:
            start = max(0, i - LOOKBACK_BEFORE_TASK_ONE)
            break

    ordered: list[Heading] = []
    seen: set[int] = set()
    last_n = 0
    for i in range(start, len(tagged)):
        parsed = parse_heading(tagged[i].line)
        if not parsed:
            continue
        n, title = parsed
        if n in seen or n < last_n:
            continue
        seen.add(n)
        last_n = n
        ordered.append(Heading(i, n, title, tagged[i].page, tagged[i].line))
    return ordered


def _unique_pages(items: list[PageLine]) -> list[int]:
    return list(dict.fromkeys(item.page for item in items))


def _build_task(heading: Heading, body_lines: list[PageLine], tagged: list[PageLine]) -> TaskDraft:
    body = "\n".join(_clean_body([item.line for item in body_lines]))
    body = re.sub(r"\n{3,}", "\n\n", body).rstrip()

    warnings: list[str] = []
    if not body.strip():
        body = f"Task {heading.n} — {heading.title}" if heading.title else f"Task {heading.n}"
        warnings.append("task body: empty")

    preview = " ".join(item.line for item in tagged[heading.index:heading.index + AIAS_PREVIEW_LINES])
    aias = AIAS.search(normalize_whitespace(preview))

    fields = dict(
        n=heading.n,
        label=f"Task {heading.n}",
        title=heading.title,
        heading=heading.raw,
        pages=_unique_pages([tagged[heading.index]] + body_lines),
        text=body,
        prompt=body,
        aias=f"AIAS {aias.group(1)}" if aias else None,
        confidence=TaskConfidence.HEURISTIC if warnings else TaskConfidence.CLEAN,
    )
    parts = extract_parts(body)
    if parts:
        fields["parts"] = parts
    tables = detect_table_blocks(body)
    if tables:
        fields["tables"] = tables
    if warnings:
        fields["warnings"] = warnings
    return TaskDraft(**fields)


def extract_brief_tasks(text: str, pages: list[str]) -> TasksResult:
    """Tasks in document order, end matter, and scan-level warnings."""
    source_pages = pages or [text or ""]
    cleaned_pages = ["\n".join(l for l in _split_lines(p) if not is_footer_line(l)) for p in source_pages]
    end_matter = extract_end_matter(cleaned_pages)
    tagged = _tag_lines(cleaned_pages, paged=bool(pages))

    headings = _ordered_headings(tagged)
    if not headings:
        return TasksResult(tasks=[], warnings=[NO_HEADINGS_WARNING], end_matter=end_matter)

    tasks: list[TaskDraft] = []
    first = headings[0]
    if first.index > 0:
        pre = tagged[:first.index]
        pre_text = "\n".join(_clean_body([item.line for item in pre])).strip()
        if pre_text and INITIAL_PROPOSAL.search(pre_text):
            tasks.append(TaskDraft(
                n=0,
                label="Task 0",
                title="Initial Idea Proposal (AIAS 2)",
                heading="",
                pages=_unique_pages(pre),
                text=pre_text,
                prompt=pre_text,
                confidence=TaskConfidence.HEURISTIC,
            ))

    for idx, heading in enumerate(headings):
        end = headings[idx + 1].index if idx + 1 < len(headings) else len(tagged)
        tasks.append(_build_task(heading, tagged[heading.index + 1:end], tagged))

    return TasksResult(tasks=tasks, warnings=[], end_matter=end_matter)
