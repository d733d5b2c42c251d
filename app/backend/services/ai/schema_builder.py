"""
Response schema construction for structured extraction output.

The schema sent to Gemini forces one ``{value, source}`` object per field,
and the matching Pydantic model is the only path through which the
response data is read back.
"""

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, create_model

# Handle both package imports and standalone imports
try:
    from ...models import ExtractedItem, FieldType, SchemaField
except ImportError:
    from models import ExtractedItem, FieldType, SchemaField

DATE_FORMAT_HINT = "YYYY-MM-DD"

SOURCE_DESCRIPTION = (
    "The filename (e.g., 'contract.pdf') or specific context where this data was found."
)


def _value_description(field: SchemaField) -> str:
    description = field.description or f"The {field.name} found in the context."
    if field.type == FieldType.DATE:
        description = f"{description} Format: {DATE_FORMAT_HINT}."
    return description


def _value_type(field: SchemaField) -> types.Type:
    if field.type == FieldType.NUMBER:
        return types.Type.NUMBER
    # Dates travel as strings
    return types.Type.STRING


def build_response_schema(fields: list[SchemaField]) -> types.Schema:
    """
    Build the structured output schema for a list of fields.

    Every field becomes a required object property holding a nullable
    ``value`` (numeric for number fields, string otherwise) and a nullable
    ``source``.

    Args:
        fields: The schema fields, in display order.

    Returns:
        The Gemini response schema.
    """
    properties: dict[str, types.Schema] = {}
    for field in fields:
        properties[field.name] = types.Schema(
            type=types.Type.OBJECT,
            properties={
                "value": types.Schema(
                    type=_value_type(field),
                    description=_value_description(field),
                    nullable=True,
                ),
                "source": types.Schema(
                    type=types.Type.STRING,
                    description=SOURCE_DESCRIPTION,
                    nullable=True,
                ),
            },
            required=["value", "source"],
            property_ordering=["value", "source"],
        )

    names = [f.name for f in fields]
    return types.Schema(
        type=types.Type.OBJECT,
        properties=properties,
        required=names,
        property_ordering=names,
    )


class ExtractionPayload(BaseModel):
    """Base for the per-schema response models built by ``build_payload_model``."""

    model_config = ConfigDict(extra="ignore")

    def items_by_name(self) -> dict[str, ExtractedItem]:
        """Return the extracted items keyed by field name, in schema order."""
        return {
            info.alias: getattr(self, attr)
            for attr, info in type(self).model_fields.items()
            if info.alias
        }


def build_payload_model(fields: list[SchemaField]) -> type[ExtractionPayload]:
    """
    Build the Pydantic model that mirrors ``build_response_schema``.

    Field names are arbitrary JSON keys, so each one is stored under a
    positional attribute and addressed through its alias.
    """
    definitions = {
        f"field_{index}": (ExtractedItem, Field(..., alias=field.name))
        for index, field in enumerate(fields)
    }
    return create_model("ExtractionResponse", __base__=ExtractionPayload, **definitions)
