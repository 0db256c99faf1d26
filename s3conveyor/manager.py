"""
Manager: facade binding inbound files to conveyance

The Manager turns HTTP uploads, local paths, blobs and prepared
ConveyedFile objects into Conveyor / ImageConveyor calls.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union

from .address import Category
from .conveyor import Conveyor
from .exceptions import ConveyorConfigError, RetryExhaustedError
from .factory import createConveyor
from .file import ConveyedFile
from .image.conveyor import ImageConveyor
from .image.resizer import SizesConfig, VariantSource
from .models import ObjectMetadata

if TYPE_CHECKING:
    from .config.manager import ConfigManager

logger = logging.getLogger(__name__)

ResizerFactory = Callable[[ConveyedFile, SizesConfig, bool], VariantSource]


class Manager:
    """
    File manager on top of a Conveyor.

    Every upload method returns the ConveyedFile it created (so callers can
    read its obfuscated name) or None if the conveyance failed.

    Args:
        conveyor: Conveyor to upload through
        resizerFactory: Builds a VariantSource for (file, sizes, crop); required for
            image uploads with a non-empty sizes configuration
    """

    def __init__(self, conveyor: Conveyor, resizerFactory: Optional[ResizerFactory] = None):
        self.conveyor = conveyor
        self.resizerFactory = resizerFactory

    @classmethod
    def fromConfig(cls, configManager: "ConfigManager", resizerFactory: Optional[ResizerFactory] = None) -> "Manager":
        """Create a Manager with a Conveyor built from configuration."""
        return cls(createConveyor(configManager), resizerFactory=resizerFactory)

    def getConveyor(self) -> Conveyor:
        return self.conveyor

    def setBucket(self, bucket: Optional[str]) -> "Manager":
        """Set the bucket to a different value."""
        self.conveyor.setBucket(bucket)
        return self

    def sync(self, directory: str, category: Optional[Category] = None, download: bool = False) -> None:
        """Sync a local directory with the objects of a category."""
        self.conveyor.syncLocalDirectory(directory, category, download)

    def getUrl(self, fileName: str, category: Optional[Category] = None, secure: bool = False) -> str:
        """Get the full URL of a file."""
        return self.conveyor.getFullS3Url(fileName, category, secure)

    def getBaseUrl(self, secure: bool = False) -> str:
        return self.conveyor.getBaseS3Url(secure)

    def getInfo(self, filename: str, category: Optional[Category] = None) -> ObjectMetadata:
        """
        Get the info of a file.

        Raises:
            NotFoundError: If the file does not exist
        """
        return self.conveyor.getObjectInfo(filename, category)

    def stash(self, filename: str, category: Optional[Category] = None, tmpPrefix: str = "s3-file-") -> Optional[str]:
        """Store a file to disk as a tmp file, returning its path (None if missing)."""
        return self.conveyor.stashObject(filename, category, tmpPrefix)

    def fileExists(self, filename: str, category: Optional[Category] = None) -> bool:
        return self.conveyor.objectExists(filename, category)

    def deleteFile(self, filename: str) -> bool:
        """Delete a file of the current category."""
        return self.conveyor.deleteObject(filename)

    def upload(
        self, files: Mapping[str, Any], fileVar: str = "upload", directory: Optional[Category] = None
    ) -> Optional[ConveyedFile]:
        """
        Upload a file from an HTTP multipart request.

        Args:
            files: Uploaded files of the request by field name (i.e. request.files)
            fileVar: Name of the file field
            directory: Category for the file

        Returns:
            The uploaded file, or None if the field is absent or the upload failed
        """
        uploaded = files.get(fileVar)
        if uploaded is None:
            logger.debug(f"No file in field {fileVar}")
            return None

        return self.uploadFileObject(ConveyedFile.fromUpload(uploaded), directory)

    def uploadFile(
        self, filename: Union[str, Path], directory: Optional[Category] = None, mimeType: Optional[str] = None
    ) -> Optional[ConveyedFile]:
        """
        Upload a local file.

        Raises:
            NotFoundError: If the local file does not exist
        """
        return self.uploadFileObject(ConveyedFile.fromPath(filename, mimeType), directory)

    def uploadFileObject(self, file: ConveyedFile, directory: Optional[Category] = None) -> Optional[ConveyedFile]:
        """Upload a prepared ConveyedFile."""
        if self._convey(file, directory):
            return file
        return None

    def uploadBlob(
        self, blob: bytes, directory: Optional[Category] = None, mimeType: Optional[str] = None
    ) -> Optional[ConveyedFile]:
        """Upload raw binary data."""
        return self.uploadFileObject(ConveyedFile.fromBlob(blob, mimeType), directory)

    def uploadImage(
        self,
        files: Mapping[str, Any],
        fileVar: str = "upload",
        directory: Optional[Category] = None,
        sizes: Optional[SizesConfig] = None,
        crop: bool = False,
    ) -> Optional[ConveyedFile]:
        """Upload an image from an HTTP multipart request, then its resized variants."""
        file = self.upload(files, fileVar, directory)
        if file is not None and self._conveyImages(file, sizes, crop):
            return file
        return None

    def uploadImageFile(
        self,
        filename: Union[str, Path],
        directory: Optional[Category] = None,
        sizes: Optional[SizesConfig] = None,
        crop: bool = False,
        mimeType: Optional[str] = None,
    ) -> Optional[ConveyedFile]:
        """Upload a local image file, then its resized variants."""
        file = self.uploadFile(filename, directory, mimeType)
        if file is not None and self._conveyImages(file, sizes, crop):
            return file
        return None

    def uploadImageFileObject(
        self,
        file: ConveyedFile,
        directory: Optional[Category] = None,
        sizes: Optional[SizesConfig] = None,
        crop: bool = False,
    ) -> Optional[ConveyedFile]:
        """Upload a prepared image file, then its resized variants."""
        uploaded = self.uploadFileObject(file, directory)
        if uploaded is not None and self._conveyImages(uploaded, sizes, crop):
            return uploaded
        return None

    def uploadImageBlob(
        self,
        blob: bytes,
        directory: Optional[Category] = None,
        sizes: Optional[SizesConfig] = None,
        crop: bool = False,
    ) -> Optional[ConveyedFile]:
        """Upload raw image data, then its resized variants."""
        file = self.uploadBlob(blob, directory)
        if file is not None and self._conveyImages(file, sizes, crop):
            return file
        return None

    def _convey(self, file: ConveyedFile, directory: Optional[Category] = None) -> bool:
        """Upload a file under directory (kept as the current category)."""
        self.conveyor.setFileCategory(directory)

        try:
            return self.conveyor.uploadRaw(file.raw, file.fullFilename, file.mimeType)
        except RetryExhaustedError as e:
            logger.error(f"Failed to convey {file.fullFilename}: {e}")
            return False

    def _conveyImages(self, file: ConveyedFile, sizes: Optional[SizesConfig] = None, crop: bool = False) -> bool:
        """
        Resize and convey image variants.

        Without a sizes configuration there is nothing to resize and this succeeds.

        Raises:
            ConveyorConfigError: If sizes are given but no resizer factory was configured
        """
        if not sizes:
            return True

        if self.resizerFactory is None:
            raise ConveyorConfigError("Image sizes were requested but no resizer factory is configured")

        uploader = ImageConveyor(self.conveyor, self.resizerFactory(file, sizes, crop))
        return uploader.resizeAndUpload()
