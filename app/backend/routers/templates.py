"""
Router for schema template listing.
"""

from fastapi import APIRouter

# Handle both package imports and standalone imports
try:
    from ..models import SchemaTemplate
    from ..services.schema_templates import TEMPLATES
except ImportError:
    from models import SchemaTemplate
    from services.schema_templates import TEMPLATES

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[SchemaTemplate])
async def list_templates() -> list[SchemaTemplate]:
    """List the built-in schema templates."""
    return TEMPLATES
