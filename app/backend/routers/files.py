"""
Router for file upload endpoints.

Handles:
- Multipart uploads (documents, images, audio)
- Data URL uploads from browser file readers
- Removing uploaded files
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
    from ..dependencies import get_session
    from ..models import DataUrlUpload, UploadedFileInfo
    from ..services.file_encoder import FileEncodingError, SourceFile
    from ..session import ExtractionSession
except ImportError:
    from config import get_settings
    from dependencies import get_session
    from models import DataUrlUpload, UploadedFileInfo
    from services.file_encoder import FileEncodingError, SourceFile
    from session import ExtractionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}/files", tags=["files"])


def _check_size(name: str, size: int) -> None:
    settings = get_settings()
    if size > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File '{name}' exceeds the {settings.max_upload_mb} MB limit",
        )


@router.get("", response_model=list[UploadedFileInfo])
async def list_files(
    session: ExtractionSession = Depends(get_session),
) -> list[UploadedFileInfo]:
    """List uploaded files in upload order."""
    return session.file_infos()


@router.post("", response_model=list[UploadedFileInfo], status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: Annotated[list[UploadFile], File(description="Documents, images or audio")],
    session: ExtractionSession = Depends(get_session),
) -> list[UploadedFileInfo]:
    """
    Add files to the session.

    Files are appended to the ones already uploaded. Returns the full list.
    """
    received: list[SourceFile] = []
    for upload in files:
        name = upload.filename or "unnamed"
        try:
            content = await upload.read()
        except Exception as e:
            logger.exception("Failed to read upload: %s", name)
            raise FileEncodingError(f"Could not read file '{name}': {e}") from e
        finally:
            await upload.close()

        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Empty file provided: '{name}'",
            )
        _check_size(name, len(content))

        logger.info("Received %s (%s, %d bytes)", name, upload.content_type, len(content))
        received.append(SourceFile(filename=name, content_type=upload.content_type, content=content))

    session.add_files(received)
    return session.file_infos()


@router.post("/data-url", response_model=list[UploadedFileInfo], status_code=status.HTTP_201_CREATED)
async def upload_data_url(
    upload: DataUrlUpload,
    session: ExtractionSession = Depends(get_session),
) -> list[UploadedFileInfo]:
    """Add a file sent as a ``data:<mime>;base64,...`` URL."""
    source = SourceFile.from_data_url(upload.name, upload.data_url)
    if not source.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Empty file provided: '{upload.name}'",
        )
    _check_size(upload.name, source.size)

    session.add_files([source])
    return session.file_infos()


@router.delete("/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_file(
    index: int,
    session: ExtractionSession = Depends(get_session),
) -> Response:
    """Remove the file at the given position."""
    session.remove_file(index)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_files(
    session: ExtractionSession = Depends(get_session),
) -> Response:
    """Remove all uploaded files."""
    session.clear_files()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
