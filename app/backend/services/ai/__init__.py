"""
AI service package for multimodal data extraction.

This package provides modular AI functionality split into:
- schema_builder: Response schema and typed payload model from the user's fields
- extraction: Prompt assembly, the single Gemini call, and response parsing
- validation: Number and date normalization of extracted values

The AIService class owns the Gemini client and delegates to these modules.
"""

import logging
from typing import Any

# Handle both package imports and standalone imports
try:
    from ...config import get_settings
    from ...models import AggregatedResult, SchemaField
    from ..file_encoder import ReadableFile
except ImportError:
    from config import get_settings
    from models import AggregatedResult, SchemaField
    from services.file_encoder import ReadableFile

from .exceptions import AIServiceError
from .extraction import (
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    build_extraction_prompt,
    extract_data as _extract_data,
    parse_extraction_response,
)
from .schema_builder import build_payload_model, build_response_schema
from .validation import ValidationResult, normalize_extracted_items, parse_currency, parse_date

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "ValidationResult",
    "build_extraction_prompt",
    "build_payload_model",
    "build_response_schema",
    "extract_data",
    "get_ai_service",
    "normalize_extracted_items",
    "parse_currency",
    "parse_date",
    "parse_extraction_response",
]


class AIService:
    """
    Service for AI-powered extraction across uploaded files.

    Uses Gemini with structured JSON output: all files and the instruction
    text go out in one request and the answer must match a schema built
    from the user's fields.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        client: Any = None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: Gemini API key. If omitted, read from config/environment.
            model: Gemini model to use (must accept documents, images and audio).
            temperature: Sampling temperature for extraction.
            client: Pre-built client (used by tests).
        """
        settings = get_settings()
        if api_key is None:
            api_key = settings.gemini_api_key

        self.api_key = api_key
        self.model = model or settings.gemini_model or DEFAULT_MODEL
        self.temperature = (
            temperature if temperature is not None else settings.extraction_temperature
        )
        self._client = client

        if not self.api_key and self._client is None:
            logger.error(
                "Missing Gemini API key. Set GEMINI_API_KEY (or API_KEY); extractions will fail."
            )

    @property
    def client(self):
        """Lazy-load the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "Gemini API key not provided. Set GEMINI_API_KEY environment variable."
                )
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def extract(
        self,
        files: list[ReadableFile],
        fields: list[SchemaField],
    ) -> AggregatedResult:
        """
        Run one extraction over all files.

        Args:
            files: Uploaded files to read.
            fields: The schema fields to extract.

        Returns:
            AggregatedResult; failures are reported as an error result.
        """
        try:
            client = self.client
        except AIServiceError as e:
            logger.error("Extraction aborted: %s", e)
            return AggregatedResult.failure(str(e))

        return await _extract_data(
            files,
            fields,
            client=client,
            model=self.model,
            temperature=self.temperature,
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


extract_data = _extract_data
