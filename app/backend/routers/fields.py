"""
Router for schema editor endpoints.

Handles:
- Adding, updating and removing schema fields
- Clearing all fields
- Applying schema templates
"""

import logging

from fastapi import APIRouter, Depends, Response, status

# Handle both package imports and standalone imports
try:
    from ..dependencies import get_session
    from ..models import SchemaField, SchemaFieldUpdate
    from ..session import ExtractionSession
except ImportError:
    from dependencies import get_session
    from models import SchemaField, SchemaFieldUpdate
    from session import ExtractionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}/fields", tags=["fields"])


@router.get("", response_model=list[SchemaField])
async def list_fields(
    session: ExtractionSession = Depends(get_session),
) -> list[SchemaField]:
    """List the schema fields in display order."""
    return session.fields


@router.post("", response_model=SchemaField, status_code=status.HTTP_201_CREATED)
async def add_field(
    field: SchemaField | None = None,
    session: ExtractionSession = Depends(get_session),
) -> SchemaField:
    """
    Append a field to the schema.

    Without a body, an empty text field is added for the user to fill in.
    """
    if field is None:
        return session.add_field()
    return session.add_field(name=field.name, type=field.type, description=field.description)


@router.patch("/{field_id}", response_model=SchemaField)
async def update_field(
    field_id: str,
    update: SchemaFieldUpdate,
    session: ExtractionSession = Depends(get_session),
) -> SchemaField:
    """Change the name, type or description of a field."""
    return session.update_field(field_id, update)


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_field(
    field_id: str,
    session: ExtractionSession = Depends(get_session),
) -> Response:
    """Remove one field."""
    session.remove_field(field_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_fields(
    session: ExtractionSession = Depends(get_session),
) -> Response:
    """Remove all fields."""
    session.clear_fields()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/templates/{template_id}", response_model=list[SchemaField])
async def apply_template(
    template_id: str,
    session: ExtractionSession = Depends(get_session),
) -> list[SchemaField]:
    """
    Append a template's fields to the schema.

    Returns the full field list after the template was applied.
    """
    session.apply_template(template_id)
    return session.fields
