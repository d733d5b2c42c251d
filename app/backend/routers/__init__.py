"""
Routers package for FastAPI endpoints.

Organized by domain:
- sessions: Session lifecycle
- fields: Schema editor (fields and templates)
- files: File uploads
- extraction: Extraction and results
- crm: CRM accounts and result submission
- templates: Built-in schema templates
"""

from . import crm, extraction, fields, files, sessions, templates

# Export extract_router for root-level routes
from .extraction import extract_router

__all__ = ["crm", "extraction", "fields", "files", "sessions", "templates", "extract_router"]
