"""
Table detection inside task bodies.

A candidate block is three or more consecutive lines that each split into
at least two columns (on `|`, tabs or runs of 2+ spaces). It becomes a
TABLE only for a known shape; anything else is kept verbatim as an
UNSTRUCTURED block with a warning. Column boundaries are never guessed.
"""

import re
from typing import Optional

from docextract.schemas.drafts import Block, TableBlock, UnstructuredBlock

UNSTRUCTURED_WARNING = "TABLE UNSTRUCTURED"
MIN_BLOCK_LINES = 3
MIN_NUMERIC_ROWS = 2

CAPTION = re.compile(r"^\s*Table\s+\d+\b.*$", re.I)
_NUMERIC_CELL = re.compile(r"^([<>]=?\s*)?[-+]?\d+(\.\d+)?(%|[a-z]+)?$", re.I)
_COLUMN_GAP = re.compile(r"\s{2,}|\t+")


def split_columns(line: str) -> list[str]:
    clean = line.strip()
    clean = clean[1:] if clean.startswith("|") else clean
    clean = clean[:-1] if clean.endswith("|") else clean
    if "|" in clean:
        cells = clean.split("|")
    else:
        cells = _COLUMN_GAP.split(clean)
    return [cell.strip() for cell in cells if cell.strip()]


def is_numeric_cell(cell: str) -> bool:
    return bool(_NUMERIC_CELL.match(cell.replace(",", "").strip()))


def _mostly_numeric(cells: list[str]) -> bool:
    if not cells:
        return False
    return sum(1 for c in cells if is_numeric_cell(c)) >= (len(cells) + 1) // 2


def _looks_like_data_row(row: list[str], expected_columns: int) -> bool:
    if len(row) < max(2, expected_columns - 1):
        return False
    tail = row[1:]
    return bool(tail) and all(is_numeric_cell(c) for c in tail)


def _has_before_after_headers(headers: list[str]) -> bool:
    joined = " ".join(headers).lower()
    return "before" in joined and "after" in joined


def classify_block(lines: list[str], caption: Optional[str] = None) -> Block:
    """TABLE for a before/after header or consistent numeric rows, else UNSTRUCTURED."""
    matrix = [split_columns(line) for line in lines]
    headers = matrix[0]
    rows = [row for row in matrix[1:] if len(row) >= 2]
    column_count = len(headers)

    numeric_rows = [row for row in rows if _mostly_numeric(row[1:]) or _looks_like_data_row(row, column_count)]
    before_after = _has_before_after_headers(headers) and len(numeric_rows) >= MIN_NUMERIC_ROWS
    consistent = sum(1 for row in rows if len(row) >= max(2, column_count - 1)) >= MIN_NUMERIC_ROWS

    if before_after or (consistent and len(numeric_rows) >= MIN_NUMERIC_ROWS):
        return TableBlock(kind="TABLE", caption=caption, headers=headers, rows=rows)
    return UnstructuredBlock(kind="UNSTRUCTURED", caption=caption, text="\n".join(lines),
                             warning=UNSTRUCTURED_WARNING)


def detect_table_blocks(text: str) -> list[Block]:
    """Scan a task body for table-like regions; a preceding 'Table N' line becomes the caption."""
    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: list[Block] = []
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if len(split_columns(line)) < 2:
            i += 1
            continue

        candidate = [line]
        j = i + 1
        while j < len(lines):
            nxt = lines[j].strip()
            if not nxt or len(split_columns(nxt)) < 2:
                break
            candidate.append(nxt)
            j += 1

        if len(candidate) >= MIN_BLOCK_LINES:
            blocks.append(classify_block(candidate, _caption_before(lines, i)))
            i = j
            continue
        i += 1
    return blocks


def _caption_before(lines: list[str], index: int) -> Optional[str]:
    for prev in reversed(lines[:index]):
        if not prev.strip():
            continue
        return prev.strip() if CAPTION.match(prev) else None
    return None
