"""
Data extraction across all uploaded files with a single Gemini call.

The files are sent as inline parts together with an instruction block, and
the model's output is constrained by a response schema built from the
user's fields.
"""

import logging
from typing import Any

from google.genai import types
from pydantic import ValidationError

# Handle both package imports and standalone imports
try:
    from ...models import AggregatedResult, SchemaField
    from ..file_encoder import EncodedFile, FileEncodingError, ReadableFile, encode_files
except ImportError:
    from models import AggregatedResult, SchemaField
    from services.file_encoder import EncodedFile, FileEncodingError, ReadableFile, encode_files

from .exceptions import AIServiceError
from .schema_builder import build_payload_model, build_response_schema
from .validation import normalize_extracted_items

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.1


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_PROMPT = """You are an expert data analyst and extraction AI.

TASK:
Analyze ALL the provided files collectively (documents, images, audio) as a single context.
Aggregate the information found across these different sources to populate the requested data fields.

For every single field, you MUST provide:
1. The extracted 'value'.
2. The 'source' - strictly the name of the file where this specific piece of data was found. If derived from multiple, list them.

Files provided: {file_list}

Fields to extract:
{field_descriptions}

Rules:
1. If a field is not found in ANY of the files, set 'value' to null and 'source' to null.
2. For 'date' types, strictly use YYYY-MM-DD format.
3. For 'number' types, remove currency symbols and return raw numbers.
4. Be precise. If the file is an audio file, listen to the content to extract data."""


def build_extraction_prompt(file_names: list[str], fields: list[SchemaField]) -> str:
    """Build the instruction text for a set of files and fields."""
    field_descriptions = "\n".join(
        f"- {f.name} ({f.type.value}): {f.description or 'Extract value'}"
        for f in fields
    )
    return EXTRACTION_PROMPT.format(
        file_list=", ".join(file_names),
        field_descriptions=field_descriptions,
    )


def build_generation_config(
    fields: list[SchemaField], temperature: float = DEFAULT_TEMPERATURE
) -> types.GenerateContentConfig:
    """Structured JSON output, constrained by the response schema."""
    return types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=build_response_schema(fields),
        temperature=temperature,
    )


def parse_extraction_response(text: str | None, fields: list[SchemaField]) -> AggregatedResult:
    """
    Parse the model's JSON text into a successful result.

    Raises:
        AIServiceError: If the text is empty, not valid JSON, misses a field,
            or holds a value that does not fit its field type.
    """
    if not text or not text.strip():
        raise AIServiceError("Empty response from AI")

    payload_model = build_payload_model(fields)
    try:
        payload = payload_model.model_validate_json(text)
    except ValidationError as e:
        missing = [
            str(err["loc"][0]) for err in e.errors() if err["type"] == "missing" and len(err["loc"]) == 1
        ]
        if missing:
            raise AIServiceError(
                f"AI response is missing fields: {', '.join(missing)}"
            ) from e
        if any(err["type"] == "json_invalid" for err in e.errors()):
            logger.error("Failed to parse extraction response: %s", text[:500])
            raise AIServiceError("Invalid JSON in extraction response") from e
        raise AIServiceError(f"AI response does not match the schema: {e}") from e

    validation = normalize_extracted_items(payload.items_by_name(), fields)
    for warning in validation.warnings:
        logger.warning(warning)

    return AggregatedResult.success(validation.validated_data, validation.warnings)


async def _generate(
    encoded: list[EncodedFile],
    fields: list[SchemaField],
    client: Any,  # google.genai.Client
    model: str,
    temperature: float,
) -> str | None:
    prompt = build_extraction_prompt([f.name for f in encoded], fields)
    logger.debug("Extraction prompt: %s", prompt)

    contents = types.Content(
        role="user",
        parts=[*(f.to_part() for f in encoded), types.Part.from_text(text=prompt)],
    )
    response = await client.aio.models.generate_content(
        model=model,
        contents=contents,
        config=build_generation_config(fields, temperature),
    )
    return response.text


async def extract_data(
    files: list[ReadableFile],
    fields: list[SchemaField],
    client: Any,  # google.genai.Client
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
) -> AggregatedResult:
    """
    Extract the requested fields from all files in one AI call.

    Never raises: file read errors, AI service errors and invalid responses
    all come back as an error result.

    Args:
        files: Uploaded files (anything with filename, content_type, read()).
        fields: The schema fields to extract.
        client: Gemini client instance.
        model: Model name to use.
        temperature: Sampling temperature.

    Returns:
        AggregatedResult with one item per field name on success.
    """
    logger.info(
        "Extracting %d field(s) from %d file(s) with %s",
        len(fields),
        len(files),
        model,
    )

    try:
        encoded = await encode_files(files)
        text = await _generate(encoded, fields, client, model, temperature)
        result = parse_extraction_response(text, fields)

    except (FileEncodingError, AIServiceError) as e:
        logger.error("Extraction failed: %s", e)
        return AggregatedResult.failure(str(e))
    except Exception as e:
        logger.exception("Error processing files")
        return AggregatedResult.failure(str(e) or "Extraction failed")

    logger.info(
        "Extraction succeeded: %d/%d field(s) found",
        sum(1 for item in result.data.values() if item.value is not None),
        len(fields),
    )
    return result
