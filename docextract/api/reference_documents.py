"""
/api/v1/reference-documents endpoints.
Parses an uploaded unit spec or assignment brief into its draft.
"""

import structlog
from fastapi import APIRouter, Depends

from docextract.api.errors import api_error, with_request_id
from docextract.dependencies import get_reference_extractor, verify_api_key
from docextract.models.enums import ReferenceDocumentType
from docextract.pipeline.extraction_service import make_request_id
from docextract.pipeline.reference_document import ReferenceDocumentExtractor
from docextract.schemas.contracts import WireModel
from docextract.storage.paths import resolve_upload_path

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/reference-documents", tags=["reference-documents"],
                   dependencies=[Depends(verify_api_key)])


class ParseReferenceRequest(WireModel):
    type: ReferenceDocumentType
    storage_path: str
    title: str = ""


@router.post("/parse")
async def parse_reference_document(
    body: ParseReferenceRequest,
    extractor: ReferenceDocumentExtractor = Depends(get_reference_extractor),
):
    """Extract text from an uploaded reference document and return its parsed draft."""
    request_id = make_request_id()
    try:
        result = await extractor.extract(body.type, resolve_upload_path(body.storage_path), body.title)
    except FileNotFoundError:
        return api_error(404, "REFERENCE_FILE_NOT_FOUND", "Reference document file not found.", request_id)

    payload = {
        "ok": True,
        "extractedJson": result.extracted,
        "warnings": result.warnings,
        "requestId": request_id,
    }
    return with_request_id(payload, request_id)
