"""
S3 Conveyor package

This package uploads, downloads, syncs and deletes files (including resized
image variants) against S3-compatible object storage, under a
bucket/category addressing scheme, with bounded upload retries.
"""

from .address import AddressContext
from .conveyor import Conveyor
from .exceptions import (
    AddressError,
    ConveyanceCancelledError,
    ConveyorConfigError,
    ConveyorError,
    InvalidUploadError,
    NotFoundError,
    RetryExhaustedError,
    TransportError,
)
from .file import ConveyedFile, FileSource
from .image import ImageConveyor, PrecomputedResizer, Resizer, VariantSource
from .manager import Manager
from .models import ObjectMetadata, RetryPolicy, VariantUploadReport

__all__ = [
    "AddressContext",
    "AddressError",
    "ConveyanceCancelledError",
    "ConveyedFile",
    "Conveyor",
    "ConveyorConfigError",
    "ConveyorError",
    "FileSource",
    "ImageConveyor",
    "InvalidUploadError",
    "Manager",
    "NotFoundError",
    "ObjectMetadata",
    "PrecomputedResizer",
    "Resizer",
    "RetryExhaustedError",
    "RetryPolicy",
    "TransportError",
    "VariantSource",
    "VariantUploadReport",
]
