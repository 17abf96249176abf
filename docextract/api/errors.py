"""
Error envelope for API responses: {error, code, requestId} plus an
x-request-id header.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docextract.pipeline.extraction_service import ExtractionError, make_request_id

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def api_error(status_code: int, code: str, user_message: str, request_id: Optional[str] = None) -> JSONResponse:
    request_id = request_id or make_request_id()
    return JSONResponse(
        status_code=status_code,
        content={"error": user_message, "code": code, "requestId": request_id},
        headers={REQUEST_ID_HEADER: request_id},
    )


def with_request_id(payload: dict, request_id: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload, headers={REQUEST_ID_HEADER: request_id})


async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.warning(
        "api_error",
        path=request.url.path,
        code=exc.error_code,
        status=exc.status_code,
        request_id=exc.request_id,
        error=exc.message,
    )
    return api_error(exc.status_code, exc.error_code, exc.user_message, exc.request_id)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExtractionError, extraction_error_handler)
