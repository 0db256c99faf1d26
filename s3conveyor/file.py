"""
Inbound file abstraction

ConveyedFile normalizes every inbound source (HTTP multipart upload, local
path, in-memory blob) into one shape: raw bytes, an obfuscated base name,
an extension and a mime type.
"""

import logging
import mimetypes
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import InvalidUploadError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileSource(StrEnum):
    """Where a ConveyedFile came from"""

    UPLOAD = "upload"
    LOCAL = "local"
    BLOB = "blob"


def detectMimeType(raw: bytes, originalName: Optional[str] = None) -> str:
    """
    Detect MIME type from content.

    Uses python-magic for detection based on content, falls back to the
    original file name through mimetypes if libmagic is not available.
    """
    try:
        import magic

        detected = magic.from_buffer(raw, mime=True)
        if detected:
            return detected
    except (ImportError, OSError) as e:
        logger.warning(f"Failed to detect mime type from content: {e}")

    if originalName:
        guessed, _ = mimetypes.guess_type(originalName)
        if guessed:
            return guessed

    return DEFAULT_MIME_TYPE


def guessExtension(mimeType: str, originalName: Optional[str] = None) -> str:
    """
    Get a file extension (without the dot).

    The original name's suffix wins, then the mime type's registered extension.
    Returns an empty string when nothing fits.
    """
    if originalName:
        suffix = Path(originalName).suffix
        if suffix:
            return suffix[1:].lower()

    guessed = mimetypes.guess_extension(mimeType, strict=False)
    return guessed[1:] if guessed else ""


def getUploadStream(uploaded: Any) -> Optional[Any]:
    """
    Get the readable stream of an uploaded-file object.

    Works with starlette/FastAPI UploadFile (.file), werkzeug FileStorage
    (.stream) and plain binary file objects (.read()). Returns None for
    anything else.
    """
    stream = getattr(uploaded, "file", None) or getattr(uploaded, "stream", None)
    if stream is None and callable(getattr(uploaded, "read", None)):
        stream = uploaded
    return stream


def readUploadBytes(uploaded: Any) -> bytes:
    """
    Read all bytes of an uploaded-file object.

    Raises:
        InvalidUploadError: If the object exposes no readable stream
    """
    stream = getUploadStream(uploaded)
    if stream is None:
        raise InvalidUploadError(f"Unsupported upload object: {type(uploaded).__name__}")

    if callable(getattr(stream, "seekable", None)) and stream.seekable():
        stream.seek(0)
    data = stream.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    return bytes(data)


@dataclass
class ConveyedFile:
    """
    A file ready to be conveyed.

    Attributes:
        source: Kind of inbound source
        raw: File contents
        mimeType: MIME type of the contents
        extension: Extension without the dot ("" if unknown)
        originalName: Name the file arrived with, if any
        filename: Obfuscated base name used for the stored object
    """

    source: FileSource
    raw: bytes
    mimeType: str
    extension: str = ""
    originalName: Optional[str] = None
    filename: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def fullFilename(self) -> str:
        """Obfuscated name with the extension appended."""
        return f"{self.filename}.{self.extension}" if self.extension else self.filename

    @property
    def size(self) -> int:
        return len(self.raw)

    @classmethod
    def _build(
        cls, source: FileSource, raw: bytes, originalName: Optional[str], mimeType: Optional[str]
    ) -> "ConveyedFile":
        if mimeType is None:
            mimeType = detectMimeType(raw, originalName)
        return cls(
            source=source,
            raw=raw,
            mimeType=mimeType,
            extension=guessExtension(mimeType, originalName),
            originalName=originalName,
        )

    @classmethod
    def fromUpload(cls, uploaded: Any) -> "ConveyedFile":
        """
        Create from an HTTP multipart upload.

        The declared content type of the upload is trusted when present.

        Raises:
            InvalidUploadError: If the upload can't be read
        """
        mimeType = getattr(uploaded, "content_type", None) or getattr(uploaded, "mimetype", None)
        # Browsers send this for anything they can't identify
        if mimeType == DEFAULT_MIME_TYPE:
            mimeType = None
        return cls._build(FileSource.UPLOAD, readUploadBytes(uploaded), getattr(uploaded, "filename", None), mimeType)

    @classmethod
    def fromPath(cls, path: Union[str, Path], mimeType: Optional[str] = None) -> "ConveyedFile":
        """
        Create from a local file.

        Raises:
            NotFoundError: If path is not an existing file
        """
        filePath = Path(path)
        if not filePath.is_file():
            raise NotFoundError(f"File {path} does not exist")
        return cls._build(FileSource.LOCAL, filePath.read_bytes(), filePath.name, mimeType)

    @classmethod
    def fromBlob(cls, blob: bytes, mimeType: Optional[str] = None) -> "ConveyedFile":
        """Create from in-memory bytes."""
        return cls._build(FileSource.BLOB, bytes(blob), None, mimeType)
