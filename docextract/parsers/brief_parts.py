"""
Task part detection.

    OUTSIDE ──letter──► IN_LETTER ──roman──► IN_ROMAN
                            ▲                   │
                            └──── letter ───────┘

Lettered parts are `a)` or `a.`; roman sub-parts (`i.`, `ii)`) only count
while a letter is active. A bare `i` is ambiguous with a new letter part,
so it is read as roman only if `ii`/`iii` follows within a few lines, and
as the letter `i` only straight after `h`. Otherwise it is body text.
While inside a roman run, `v` and `x` that continue the sequence stay roman.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from docextract.pipeline.text_normalizer import normalize_whitespace
from docextract.schemas.drafts import PartDraft

LETTER_PART = re.compile(r"^([a-z])[.)]\s+(.*)$", re.I)
ROMAN_PART = re.compile(r"^([ivx]+)[.)]\s+(.*)$", re.I)
ROMAN_CONTINUATION = re.compile(r"^ii{1,2}[.)]\s+", re.I)
ROMAN_LOOKAHEAD_LINES = 6
MIN_PARTS = 2

ROMAN_VALUES = {"i": 1, "v": 5, "x": 10}


class PartState(str, Enum):
    OUTSIDE = "OUTSIDE"
    IN_LETTER = "IN_LETTER"
    IN_ROMAN = "IN_ROMAN"


@dataclass
class PartAccumulator:
    letter: Optional[str] = None
    key: Optional[str] = None
    text: list[str] = field(default_factory=list)


def roman_value(numeral: str) -> int:
    """Integer value of a small lower-case roman numeral (i..xxxix)."""
    total = 0
    values = [ROMAN_VALUES[c] for c in numeral.lower()]
    for i, value in enumerate(values):
        if i + 1 < len(values) and values[i + 1] > value:
            total -= value
        else:
            total += value
    return total


def has_roman_continuation(lines: list[str], start: int, lookahead: int = ROMAN_LOOKAHEAD_LINES) -> bool:
    """True if 'ii.'/'iii.' appears within the next `lookahead` non-blank lines."""
    seen = 0
    for candidate in lines[start + 1:]:
        candidate = candidate.strip()
        if not candidate:
            continue
        seen += 1
        if seen > lookahead:
            break
        if ROMAN_CONTINUATION.match(candidate):
            return True
    return False


class PartScanner:

    def __init__(self):
        self.state = PartState.OUTSIDE
        self.acc = PartAccumulator()
        self.parts: list[PartDraft] = []
        self.roman = 0

    def flush(self) -> None:
        if self.acc.key:
            text = normalize_whitespace(" ".join(self.acc.text))
            if text:
                self.parts.append(PartDraft(key=self.acc.key, text=text))
        self.acc = PartAccumulator(letter=self.acc.letter)

    def open_letter(self, letter: str, text: str) -> None:
        self.flush()
        self.acc = PartAccumulator(letter=letter, key=letter, text=[text])
        self.state = PartState.IN_LETTER
        self.roman = 0

    def open_roman(self, numeral: str, text: str) -> None:
        self.flush()
        self.acc.key = f"{self.acc.letter}.{numeral}"
        self.acc.text = [text]
        self.state = PartState.IN_ROMAN
        self.roman = roman_value(numeral)

    def continues_roman(self, line: str) -> Optional[re.Match]:
        if self.state != PartState.IN_ROMAN:
            return None
        roman = ROMAN_PART.match(line)
        if roman and roman_value(roman.group(1)) == self.roman + 1:
            return roman
        return None

    def add_body(self, line: str) -> None:
        if self.state != PartState.OUTSIDE:
            self.acc.text.append(line)

    def scan(self, lines: list[str]) -> list[PartDraft]:
        for idx, raw in enumerate(lines):
            line = raw.strip()
            if not line:
                continue

            roman = self.continues_roman(line)
            if roman:
                self.open_roman(roman.group(1).lower(), roman.group(2).strip())
                continue

            in_part = self.state != PartState.OUTSIDE
            letter = LETTER_PART.match(line)
            if letter:
                key = letter.group(1).lower()
                if key != "i":
                    self.open_letter(key, letter.group(2).strip())
                elif in_part and has_roman_continuation(lines, idx):
                    self.open_roman("i", letter.group(2).strip())
                elif self.acc.letter == "h":
                    self.open_letter("i", letter.group(2).strip())
                else:
                    self.add_body(line)
                continue

            roman = ROMAN_PART.match(line)
            if roman and in_part:
                self.open_roman(roman.group(1).lower(), roman.group(2).strip())
            else:
                self.add_body(line)

        self.flush()
        return self.parts


def extract_parts(text: str) -> Optional[list[PartDraft]]:
    """Flat part list (`a`, `a.i`, `b` ...) or None when fewer than two parts are found."""
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return None
    parts = PartScanner().scan(normalized.split("\n"))
    return parts if len(parts) >= MIN_PARTS else None
