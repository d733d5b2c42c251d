"""
Router for session lifecycle endpoints.

Handles:
- Creating a session
- Reading the full session state
- Deleting a session
"""

import logging

from fastapi import APIRouter, Depends, Response, status

# Handle both package imports and standalone imports
try:
    from ..dependencies import get_session
    from ..models import SessionResponse
    from ..session import ExtractionSession, SessionStore, get_session_store
except ImportError:
    from dependencies import get_session
    from models import SessionResponse
    from session import ExtractionSession, SessionStore, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Start a new, empty extraction session."""
    return store.create().to_response()


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session_state(
    session: ExtractionSession = Depends(get_session),
) -> SessionResponse:
    """Return the full state of a session."""
    return session.to_response()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> Response:
    """Discard a session and everything it holds."""
    store.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
