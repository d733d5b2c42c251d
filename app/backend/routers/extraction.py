"""
Router for extraction endpoints.

Handles:
- Session extraction over the uploaded files and defined fields
- Reading the current result and its table view
- Stateless one-shot extraction
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import TypeAdapter, ValidationError

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
    from ..dependencies import get_session
    from ..models import AggregatedResult, ResultTable, SchemaField, validate_field_list
    from ..services.ai import AIService, get_ai_service
    from ..session import NO_FILES_MESSAGE, ExtractionInputError, ExtractionSession
except ImportError:
    from config import get_settings
    from dependencies import get_session
    from models import AggregatedResult, ResultTable, SchemaField, validate_field_list
    from services.ai import AIService, get_ai_service
    from session import NO_FILES_MESSAGE, ExtractionInputError, ExtractionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}", tags=["extraction"])
# Root-level router for the stateless extract endpoint (no prefix)
extract_router = APIRouter(tags=["extraction"])

_field_list_adapter = TypeAdapter(list[SchemaField])


@router.post("/extract", response_model=AggregatedResult)
async def extract_session(
    session: ExtractionSession = Depends(get_session),
    ai_service: AIService = Depends(get_ai_service),
) -> AggregatedResult:
    """
    Extract the session's fields from all of its files.

    Input problems are rejected with 400 before any AI call. AI failures
    come back as a result with status "error".
    """
    return await session.extract(ai_service)


@router.get("/result", response_model=AggregatedResult)
async def get_result(
    session: ExtractionSession = Depends(get_session),
) -> AggregatedResult:
    """Return the latest extraction result."""
    if session.result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No extraction result yet",
        )
    return session.result


@router.get("/result/table", response_model=ResultTable)
async def get_result_table(
    session: ExtractionSession = Depends(get_session),
) -> ResultTable:
    """Return the latest result as table rows in schema order."""
    table = session.result_table()
    if table is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No extraction result yet",
        )
    return table


@extract_router.post("/extract", response_model=AggregatedResult)
async def extract_once(
    fields: Annotated[str, Form(description="JSON list of schema fields")],
    files: Annotated[list[UploadFile] | None, File(description="Documents, images or audio")] = None,
    ai_service: AIService = Depends(get_ai_service),
) -> AggregatedResult:
    """
    One-shot extraction without a session.

    Accepts the files and a JSON list of fields, and returns the
    aggregated result.
    """
    try:
        schema_fields = _field_list_adapter.validate_json(fields)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid fields: {e}",
        )

    if not files:
        raise ExtractionInputError(NO_FILES_MESSAGE)
    problems = validate_field_list(schema_fields)
    if problems:
        raise ExtractionInputError(problems[0])

    settings = get_settings()
    for upload in files:
        if upload.size is not None and upload.size > settings.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File '{upload.filename}' exceeds the {settings.max_upload_mb} MB limit",
            )

    try:
        return await ai_service.extract(files, schema_fields)
    finally:
        for upload in files:
            await upload.close()
