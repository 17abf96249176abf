"""
pdfplumber extraction engine.
Primary path for PDFs with embedded text layers.
Reads positioned text runs per page and rebuilds reading order with
engines.layout; pages run concurrently, each under its own timeout.
"""

import asyncio
from typing import Optional

import pdfplumber
import structlog

from docextract.config import ExtractionConfig
from docextract.engines.base import ExtractionEngine, EngineError
from docextract.engines.layout import items_to_text
from docextract.models.enums import DocumentKind
from docextract.schemas.contracts import ExtractionResult, Page, TextFragment

logger = structlog.get_logger(__name__)

PDF_MIME = "application/pdf"

# Layout analysis params first; bare open if the document chokes on them.
RICH_OPEN_KWARGS = {
    "laparams": {"line_overlap": 0.5, "char_margin": 2.0, "word_margin": 0.1},
    "unicode_norm": "NFKC",
}
MINIMAL_OPEN_KWARGS: dict = {}


def _count_pages(path: str, open_kwargs: dict) -> int:
    with pdfplumber.open(path, **open_kwargs) as pdf:
        return len(pdf.pages)


def _read_page(
    path: str,
    page_number: int,
    open_kwargs: dict,
    space_gap: float,
) -> tuple[list[TextFragment], float, float]:
    """
    Read one page's text runs as fragments (1-based page_number).
    Runs are chars merged within `space_gap` points, blanks kept, so the
    gap rule in items_to_text only ever sees genuine inter-run gaps.
    """
    with pdfplumber.open(path, pages=[page_number], **open_kwargs) as pdf:
        page = pdf.pages[0]
        width = float(page.width)
        height = float(page.height)
        words = page.extract_words(
            x_tolerance=space_gap,
            y_tolerance=3,
            keep_blank_chars=True,
            use_text_flow=False,
        )

    fragments = []
    for w in words:
        text = w.get("text", "")
        if not text:
            continue
        fragments.append(TextFragment(
            text=text,
            x=float(w["x0"]),
            y=height - float(w["top"]),
            width=float(w["x1"]) - float(w["x0"]),
            has_eol=False,
        ))
    return fragments, width, height


class PdfPlumberEngine(ExtractionEngine):
    """
    Extraction engine using pdfplumber for PDFs with embedded text.
    Raises EngineError only when the document cannot be opened or is over the
    page guard; a failing page degrades to empty text plus a warning.
    """

    engine_name = "pdfplumber"
    engine_version = "0.11"

    async def extract(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        warnings: list[str] = []
        open_kwargs, num_pages = await self._open(path, config, warnings)

        if num_pages > config.max_pages:
            warnings.append(f"PDF too large ({num_pages} pages). Guard={config.max_pages}")
            raise EngineError(self.engine_name, "ERR_PAGE_GUARD", warnings[-1], warnings=warnings)

        if config.cover_only and num_pages > config.cover_page_limit:
            warnings.append(f"cover-only: reading first {config.cover_page_limit}/{num_pages} pages")
            num_pages = config.cover_page_limit

        semaphore = asyncio.Semaphore(config.page_concurrency)

        async def run_page(page_number: int) -> Page:
            async with semaphore:
                return await self._extract_page(path, page_number, open_kwargs, config, warnings)

        pages = list(await asyncio.gather(*(run_page(n) for n in range(1, num_pages + 1))))

        pages_with_text = sum(1 for p in pages if len(p.text) >= config.min_chars_per_page)
        combined = "\n".join(p.text for p in pages).strip()
        is_scanned = len(combined) < config.min_total_text
        fraction = pages_with_text / len(pages) if pages else 0.0
        overall = 0.0 if is_scanned else max(0.6, min(0.95, fraction * 0.95))

        warnings.append(f"pages={len(pages)}, pagesWithText={pages_with_text}")
        if is_scanned:
            warnings.append("PDF looks scanned/image-only: OCR will be required.")

        logger.info(
            "pdfplumber_extraction_complete",
            path=path,
            pages=len(pages),
            pages_with_text=pages_with_text,
            is_scanned=is_scanned,
            confidence=round(overall, 4),
        )

        return ExtractionResult(
            kind=DocumentKind.PDF,
            detected_mime=PDF_MIME,
            is_scanned=is_scanned,
            overall_confidence=overall,
            pages=pages,
            warnings=warnings,
        )

    async def _open(self, path: str, config: ExtractionConfig, warnings: list[str]) -> tuple[dict, int]:
        """Rich open first, then minimal. Returns the kwargs that worked and the page count."""
        try:
            count = await asyncio.wait_for(
                asyncio.to_thread(_count_pages, path, RICH_OPEN_KWARGS),
                timeout=config.page_timeout_seconds,
            )
            return RICH_OPEN_KWARGS, count
        except Exception as e:
            warnings.append(f"pdf open failed (rich): {_describe(e)}")

        try:
            count = await asyncio.wait_for(
                asyncio.to_thread(_count_pages, path, MINIMAL_OPEN_KWARGS),
                timeout=config.page_timeout_seconds,
            )
        except Exception as e:
            warnings.append(f"pdf open failed (minimal): {_describe(e)}")
            raise EngineError(self.engine_name, "ERR_PDF_OPEN", _describe(e), warnings=warnings) from e

        warnings.append("opened with minimal config")
        return MINIMAL_OPEN_KWARGS, count

    async def _extract_page(
        self,
        path: str,
        page_number: int,
        open_kwargs: dict,
        config: ExtractionConfig,
        warnings: list[str],
    ) -> Page:
        try:
            fragments, width, height = await asyncio.wait_for(
                asyncio.to_thread(_read_page, path, page_number, open_kwargs, config.space_gap),
                timeout=config.page_timeout_seconds,
            )
        except Exception as e:
            warnings.append(f"Page {page_number} extraction failed: {_describe(e)}")
            logger.warning("page_extraction_failed", path=path, page=page_number, error=_describe(e))
            return Page(page_number=page_number, text="", confidence=0.0)

        text = items_to_text(fragments, config.line_y_tolerance, config.space_gap)
        return Page(
            page_number=page_number,
            text=text,
            confidence=0.9 if text else 0.0,
            width=round(width),
            height=round(height),
        )


def _describe(error: Optional[BaseException]) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "Timeout"
    return f"{type(error).__name__}: {error}"
