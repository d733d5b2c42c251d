"""
File encoding for the extraction request.

Turns uploaded files (documents, images, audio) into base64 inline parts
that can be sent to the AI service together with the instruction text.
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
import re
from dataclasses import dataclass
from typing import Protocol

from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"

_DATA_URL_RE = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]*)*;base64,",
    re.IGNORECASE,
)


class FileEncodingError(Exception):
    """Raised when an uploaded file cannot be read or encoded."""

    pass


class ReadableFile(Protocol):
    """Anything that looks like an uploaded file (e.g. Starlette's UploadFile)."""

    filename: str | None
    content_type: str | None

    async def read(self) -> bytes: ...


@dataclass
class SourceFile:
    """An uploaded file kept in memory for the lifetime of a session."""

    filename: str
    content_type: str | None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def media_type(self) -> str:
        return resolve_media_type(self.filename, self.content_type)

    async def read(self) -> bytes:
        return self.content

    @classmethod
    def from_data_url(cls, name: str, data_url: str) -> "SourceFile":
        """
        Build a file from a browser data URL.

        The ``data:<mime>;base64,`` envelope is stripped and the media type
        taken from it when present.

        Raises:
            FileEncodingError: If the data URL is malformed.
        """
        match = _DATA_URL_RE.match(data_url.strip())
        if not match:
            raise FileEncodingError(f"'{name}' is not a base64 data URL")

        payload = data_url.strip()[match.end():]
        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FileEncodingError(f"'{name}' has an invalid base64 payload") from e

        return cls(
            filename=name,
            content_type=match.group("media_type"),
            content=content,
        )


@dataclass(frozen=True)
class EncodedFile:
    """Transport-ready file: base64 text plus its media type."""

    name: str
    media_type: str
    data: str

    def to_part(self) -> types.Part:
        """Build the inline data part for a Gemini request."""
        return types.Part.from_bytes(
            data=base64.b64decode(self.data),
            mime_type=self.media_type,
        )


def resolve_media_type(filename: str | None, declared: str | None) -> str:
    """
    Pick the media type for a file.

    Uses the declared type unless it is missing or generic, then falls back
    to a guess from the file extension.
    """
    if declared and declared != DEFAULT_MEDIA_TYPE:
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return declared or DEFAULT_MEDIA_TYPE


async def encode_file(file: ReadableFile) -> EncodedFile:
    """
    Read a file and encode its content as base64.

    Raises:
        FileEncodingError: If the file cannot be read or is empty.
    """
    name = file.filename or "unnamed"
    try:
        content = await file.read()
    except Exception as e:
        logger.exception("Failed to read file: %s", name)
        raise FileEncodingError(f"Could not read file '{name}': {e}") from e

    if not content:
        raise FileEncodingError(f"File '{name}' is empty")

    data = await asyncio.to_thread(lambda: base64.b64encode(content).decode("ascii"))
    media_type = resolve_media_type(file.filename, file.content_type)

    logger.debug("Encoded %s (%s, %d bytes)", name, media_type, len(content))
    return EncodedFile(name=name, media_type=media_type, data=data)


async def encode_files(files: list[ReadableFile]) -> list[EncodedFile]:
    """
    Encode all files concurrently.

    Waits for every file; the first failure aborts the whole batch.
    The output keeps the input order.
    """
    return list(await asyncio.gather(*(encode_file(f) for f in files)))
