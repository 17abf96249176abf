"""
Tesseract OCR engine.
Fallback path for scanned/image PDFs without a usable text layer.
Pages are rendered with pdfplumber (PDFium backend) and read with pytesseract;
word boxes are regrouped into Tesseract's own block/paragraph/line structure.
"""

import asyncio
import io

import pdfplumber
import pytesseract
import structlog
from PIL import Image

from docextract.engines.base import OcrEngine
from docextract.schemas.contracts import OcrResult, Page

logger = structlog.get_logger(__name__)

# Confidence reported for an OCR page depending on whether it cleared min chars
OCR_PAGE_CONFIDENCE_OK = 0.85
OCR_PAGE_CONFIDENCE_WEAK = 0.55


def image_to_text(image: Image.Image, lang: str = "eng", psm: int = 6) -> str:
    """OCR one page image into line-ordered text."""
    data = pytesseract.image_to_data(
        image,
        lang=lang,
        config=f"--psm {psm}",
        output_type=pytesseract.Output.DICT,
    )

    lines: dict[tuple[int, int, int], list[str]] = {}
    for i in range(len(data["text"])):
        word = (data["text"][i] or "").strip()
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            conf = -1.0
        # Skip empty tokens and very low confidence
        if not word or conf < 10:
            continue
        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        lines.setdefault(key, []).append(word)

    return "\n".join(" ".join(words) for _, words in sorted(lines.items())).strip()


def _ocr_pdf_bytes(
    pdf_bytes: bytes,
    max_pages: int,
    min_chars_per_page: int,
    lang: str,
    dpi: int,
) -> OcrResult:
    warnings: list[str] = []
    pages: list[Page] = []

    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        total = len(pdf.pages)
        limit = min(total, max_pages)
        if total > limit:
            warnings.append(f"OCR limited to first {limit}/{total} pages.")

        for index in range(limit):
            page = pdf.pages[index]
            rendered = page.to_image(resolution=dpi)
            text = image_to_text(rendered.original.convert("RGB"), lang=lang)
            pages.append(Page(
                page_number=index + 1,
                text=text,
                confidence=OCR_PAGE_CONFIDENCE_OK if len(text) >= min_chars_per_page else OCR_PAGE_CONFIDENCE_WEAK,
                width=round(float(page.width)),
                height=round(float(page.height)),
            ))

    combined = "\n\n".join(p.text for p in pages if p.text).strip()
    if not combined:
        warnings.append("OCR completed but returned no text.")

    return OcrResult(ok=bool(combined), pages=pages, combined_text=combined, model="tesseract", warnings=warnings)


class TesseractOcrEngine(OcrEngine):
    """
    Tesseract OCR engine for scanned/image PDFs.
    Rendering and recognition are CPU bound and run in a worker thread.
    """

    def __init__(self, lang: str = "eng", dpi: int = 200, tesseract_cmd: str = "tesseract"):
        self.lang = lang
        self.dpi = dpi
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @property
    def model_name(self) -> str:
        return "tesseract"

    async def ocr(self, pdf_bytes: bytes, max_pages: int, min_chars_per_page: int) -> OcrResult:
        result = await asyncio.to_thread(
            _ocr_pdf_bytes, pdf_bytes, max_pages, min_chars_per_page, self.lang, self.dpi,
        )
        logger.info(
            "tesseract_ocr_complete",
            pages=len(result.pages),
            chars=len(result.combined_text),
            ok=result.ok,
        )
        return result

    async def health_check(self) -> bool:
        """Check if Tesseract is installed and accessible."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False
