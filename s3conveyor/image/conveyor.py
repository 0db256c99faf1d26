"""
Image conveyor: one logical image upload, N physical objects

The ImageConveyor drives a VariantSource and uploads the original image and every
produced variant through one Conveyor, naming variants deterministically as
{obfuscatedName}_{variantKey}{extension}.
"""

import logging
import mimetypes
from typing import Optional

from ..conveyor import Conveyor, UploadData
from ..exceptions import RetryExhaustedError
from ..models import VariantUploadReport
from .resizer import SIZE_FORMAT, SIZE_MIME_TYPE, SIZE_MIME_TYPE_ALIAS, VariantSource

logger = logging.getLogger(__name__)


class ImageConveyor:
    """
    Uploads an image and its resized variants.

    Variant uploads are best-effort: a failed variant does not stop the
    remaining ones, the overall result only reports that something failed.

    Args:
        conveyor: Conveyor used for every upload (its current category applies)
        resizer: Producer of the variants, also exposing the original file
    """

    def __init__(self, conveyor: Conveyor, resizer: VariantSource):
        self.conveyor = conveyor
        self.resizer = resizer

        file = resizer.file
        self.obfuscatedName = file.filename
        self.mimeType = file.mimeType
        self.fileExt = f".{file.extension}" if file.extension else ""

    def upload(
        self, imageData: Optional[UploadData] = None, name: Optional[str] = None, mimeType: Optional[str] = None
    ) -> bool:
        """
        Upload image data, defaulting to the original image.

        Args:
            imageData: Image binary (default: original file contents)
            name: Object name (default: obfuscated name + original extension)
            mimeType: MIME type (default: original mime type)

        Returns:
            True if the upload succeeded, False once its retries are exhausted

        Raises:
            AddressError: If the resulting name is empty
        """
        if imageData is None:
            imageData = self.resizer.file.raw
        if name is None:
            name = self.obfuscatedName + self.fileExt
        if mimeType is None:
            mimeType = self.mimeType

        try:
            return self.conveyor.uploadRaw(imageData, name, mimeType)
        except RetryExhaustedError as e:
            logger.error(f"Failed to upload image {name}: {e}")
            return False

    def getVariantMimeType(self, variantKey: str) -> str:
        """Get the declared mime type of a variant, else the one of its declared format, else the original's."""
        config = self.resizer.sizes.get(variantKey, {})
        for mimeKey in (SIZE_MIME_TYPE, SIZE_MIME_TYPE_ALIAS):
            if config.get(mimeKey):
                return config[mimeKey]
        if config.get(SIZE_FORMAT):
            guessed, _ = mimetypes.guess_type(f"variant.{config[SIZE_FORMAT]}")
            if guessed:
                return guessed
        return self.mimeType

    def getVariantExtension(self, variantKey: str) -> str:
        """Get '.' + the declared format of a variant, else the original extension."""
        config = self.resizer.sizes.get(variantKey, {})
        if config.get(SIZE_FORMAT):
            return "." + config[SIZE_FORMAT]
        return self.fileExt

    def getVariantName(self, variantKey: str) -> str:
        return f"{self.obfuscatedName}_{variantKey}{self.getVariantExtension(variantKey)}"

    def resizeAndUploadReport(self) -> VariantUploadReport:
        """
        Resize and upload every variant, reporting each outcome.

        The resizer is iterated exactly once, in its production order.
        """
        report = VariantUploadReport()

        for variantKey, variantData in self.resizer:
            name = self.getVariantName(variantKey)
            success = self.upload(variantData, name, self.getVariantMimeType(variantKey))
            report.results[variantKey] = report.results.get(variantKey, True) and success
            if not success:
                logger.warning(f"Variant {variantKey} of {self.obfuscatedName} was not uploaded")

        if not report.results:
            logger.warning(f"Resizer produced no variants for {self.obfuscatedName}")
        elif report.failedVariants:
            logger.error(f"Failed variants of {self.obfuscatedName}: {', '.join(report.failedVariants)}")

        return report

    def resizeAndUpload(self) -> bool:
        """
        Resize and upload the image.

        Returns:
            True if every variant was uploaded, False otherwise
        """
        return self.resizeAndUploadReport().succeeded
