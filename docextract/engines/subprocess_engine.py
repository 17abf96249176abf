"""
Subprocess PDF engine.
Degraded-but-robust path used when pdfplumber cannot open a document or the
document is over the page guard. The child process is killed on timeout, so
a malformed file that hangs or crashes a parser cannot take the worker down.
"""

import asyncio
import json
import sys
from typing import Optional

import structlog

from docextract.config import ExtractionConfig
from docextract.engines.base import ExtractionEngine, EngineError
from docextract.engines.pdf_text_worker import PAGE_DELIMITER
from docextract.models.enums import DocumentKind
from docextract.schemas.contracts import ExtractionResult, Page

logger = structlog.get_logger(__name__)

WORKER_MODULE = "docextract.engines.pdf_text_worker"
SUBPROCESS_PAGE_CONFIDENCE = 0.75


def parse_last_json_object(stdout: str) -> dict:
    """
    Find the last JSON object printed on its own line.
    Libraries may print noise before it; the payload is always last.
    """
    for line in reversed(stdout.splitlines()):
        candidate = line.strip()
        if not (candidate.startswith("{") and candidate.endswith("}")):
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    raise ValueError("No JSON object found in stdout")


def split_pages(text: str, numpages: Optional[int]) -> list[Page]:
    """
    Split delimiter-separated text into pages, keeping blank pages in place.
    No delimiter means one page; no text at all means `numpages` empty pages.
    """
    parts = [p.strip() for p in (text or "").split(PAGE_DELIMITER)]
    if not any(parts):
        parts = [""] * max(1, int(numpages or 1))
    elif numpages:
        while len(parts) > numpages and not parts[-1]:
            parts.pop()

    return [
        Page(
            page_number=i,
            text=page_text,
            confidence=SUBPROCESS_PAGE_CONFIDENCE if page_text else 0.0,
        )
        for i, page_text in enumerate(parts, start=1)
    ]


class SubprocessPdfEngine(ExtractionEngine):
    """Runs pdf_text_worker in a child interpreter and parses its stdout."""

    engine_name = "mupdf_subprocess"
    engine_version = "4"

    def __init__(self, python_executable: Optional[str] = None):
        self.python_executable = python_executable or sys.executable

    async def extract(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        stdout = await self._run(path, config.subprocess_timeout_seconds)

        try:
            payload = parse_last_json_object(stdout)
        except ValueError as e:
            raise EngineError(self.engine_name, "ERR_SUBPROCESS_OUTPUT", str(e)) from e

        if not payload.get("ok", False):
            raise EngineError(self.engine_name, "ERR_SUBPROCESS_FAILED", str(payload.get("error") or "unknown error"))

        raw_text = str(payload.get("text") or "")
        text = raw_text.strip()
        numpages = payload.get("numpages")
        warnings = [f"subprocess: len={len(text)}, numpages={numpages if numpages is not None else '?'}"]

        if len(text) < config.subprocess_text_min:
            raise EngineError(
                self.engine_name,
                "ERR_SUBPROCESS_SHORT_TEXT",
                f"text below {config.subprocess_text_min} chars",
                warnings=warnings,
            )

        pages = split_pages(raw_text, numpages)
        combined = "\n".join(p.text for p in pages).strip()
        is_scanned = len(combined) < config.min_total_text

        logger.info("subprocess_extraction_complete", path=path, pages=len(pages), chars=len(text))

        return ExtractionResult(
            kind=DocumentKind.PDF,
            detected_mime="application/pdf",
            is_scanned=is_scanned,
            overall_confidence=0.0 if is_scanned else SUBPROCESS_PAGE_CONFIDENCE,
            pages=pages,
            warnings=warnings,
        )

    async def _run(self, path: str, timeout: float) -> str:
        proc = await asyncio.create_subprocess_exec(
            self.python_executable, "-m", WORKER_MODULE, path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise EngineError(self.engine_name, "ERR_SUBPROCESS_TIMEOUT", f"Timeout after {timeout}s") from e

        stdout = out.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            detail = (err.decode("utf-8", errors="replace") or stdout)[:500]
            raise EngineError(
                self.engine_name,
                "ERR_SUBPROCESS_EXIT",
                f"exit code {proc.returncode}: {detail}",
            )
        return stdout
