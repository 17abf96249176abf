"""
Grading port.
Grading itself lives outside this service; we only call it and record the
outcome per submission.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel

from docextract.config import settings

logger = structlog.get_logger(__name__)


class GradeOutcome(BaseModel):
    overall_grade: Optional[str] = None
    assessment_id: Optional[str] = None


class GradingError(Exception):
    """A grading call failed; status mirrors the upstream HTTP status when there is one."""
    def __init__(self, message: str, status: int = 500):
        self.message = message
        self.status = status
        super().__init__(message)


class GradingPort(ABC):

    @abstractmethod
    async def grade(self, submission_id: str) -> GradeOutcome:
        """Grade one submission. Raises GradingError on failure."""
        ...


class HttpGradingClient(GradingPort):
    """POSTs to `{base_url}/api/submissions/{id}/grade` and reads the assessment back."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        options: Optional[dict] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.GRADING_SERVICE_URL or "").rstrip("/")
        self.timeout = timeout or settings.GRADING_TIMEOUT_SECONDS
        self.options = {k: v for k, v in (options or {}).items() if v is not None}
        self.transport = transport

    async def grade(self, submission_id: str) -> GradeOutcome:
        if not self.base_url:
            raise GradingError("GRADING_SERVICE_URL is not configured")

        url = f"{self.base_url}/api/submissions/{submission_id}/grade"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=self.options)
        except httpx.HTTPError as e:
            raise GradingError(f"Grade request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 400:
            raise GradingError(str(body.get("error") or f"Grade failed ({resp.status_code})"), resp.status_code)

        assessment = body.get("assessment") or {}
        return GradeOutcome(
            overall_grade=assessment.get("overallGrade"),
            assessment_id=assessment.get("id"),
        )
