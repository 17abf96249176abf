"""
Abstract base classes for extraction engines and the OCR port.
Every text engine must produce an ExtractionResult; every OCR engine an OcrResult.
"""

from abc import ABC, abstractmethod
from typing import Optional

from docextract.config import ExtractionConfig
from docextract.schemas.contracts import ExtractionResult, OcrResult


class ExtractionEngine(ABC):
    """
    Abstract base class for file-to-text engines.

    Every engine must:
    1. Accept an absolute file path and an ExtractionConfig
    2. Return ExtractionResult with pages in page-number order
    3. Report its name and version
    4. Raise EngineError when the document cannot be processed at all
       (never return partial/corrupt data); page-level problems become warnings
    """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Unique identifier: 'pdfplumber', 'mupdf_subprocess', 'python_docx'"""
        ...

    @property
    @abstractmethod
    def engine_version(self) -> str:
        """Semver or library version string."""
        ...

    @abstractmethod
    async def extract(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        """Extract per-page text from the file at `path`."""
        ...

    async def health_check(self) -> bool:
        """Verify engine is available."""
        return True


class OcrEngine(ABC):
    """
    OCR port: raw PDF bytes in, page texts out.
    Implementations must not raise for "no text"; they return ok=False with warnings.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @abstractmethod
    async def ocr(self, pdf_bytes: bytes, max_pages: int, min_chars_per_page: int) -> OcrResult:
        ...


class EngineError(Exception):
    """Raised when an extraction engine fails."""

    def __init__(
        self,
        engine_name: str,
        error_code: str,
        message: str,
        warnings: Optional[list[str]] = None,
    ):
        self.engine_name = engine_name
        self.error_code = error_code
        self.message = message
        self.warnings = list(warnings or [])
        super().__init__(f"[{engine_name}] {error_code}: {message}")
