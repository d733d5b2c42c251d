"""
Multimodal Extraction Backend Application.

A FastAPI service that extracts structured, user-defined fields from
uploaded documents, images and audio with a single Gemini call, and
forwards the results to a CRM webhook.
"""

__version__ = "1.0.0"
