"""
Services package for the extraction application.

Contains:
- ai: Gemini integration for multimodal structured extraction
- file_encoder: Upload reading and base64 encoding
- crm_bridge: CRM webhook client
- schema_templates: Built-in field presets
"""

from .ai import AIService
from .crm_bridge import CRMBridge

__all__ = ["AIService", "CRMBridge"]
