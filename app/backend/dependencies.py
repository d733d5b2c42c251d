"""Shared FastAPI dependencies."""

from fastapi import Depends

# Handle both package imports and standalone imports
try:
    from .session import ExtractionSession, SessionStore, get_session_store
except ImportError:
    from session import ExtractionSession, SessionStore, get_session_store


def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> ExtractionSession:
    """Resolve the session from the path; unknown ids raise SessionNotFoundError."""
    return store.get(session_id)
