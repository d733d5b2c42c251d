"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when the Gemini call fails or its response cannot be used."""

    pass
