"""
Conveyor: single-object conveyance to and from an object store

This module provides the Conveyor class which addresses objects by
bucket + category + filename, shapes upload headers, retries failed uploads
with bounded exponential backoff and reshapes head responses into ObjectMetadata.
"""

import base64
import binascii
import datetime
import io
import logging
import os
import tempfile
import threading
import time
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional

from . import address
from .address import AddressContext, Category
from .exceptions import (
    AddressError,
    ConveyanceCancelledError,
    ConveyorConfigError,
    InvalidUploadError,
    NotFoundError,
    RetryExhaustedError,
    TransportError,
)
from .file import getUploadStream, readUploadBytes
from .models import (
    DEFAULT_CACHE_LENGTH,
    DEFAULT_CONCURRENCY,
    DEFAULT_MIN_PART_SIZE,
    DEFAULT_VISIBILITY,
    ObjectMetadata,
    RetryPolicy,
    SyncDirection,
)
from .transport.abstract import AbstractObjectStore
from .transport.utils import toTimestamp

logger = logging.getLogger(__name__)

UploadData = bytes | bytearray | memoryview | BinaryIO


class Conveyor:
    """
    Conveys single objects between callers and an object store.

    The bucket and current category form a small mutable configuration. Every
    operation captures it once, at call time, as an immutable AddressContext.
    Categories passed explicitly to an operation apply to that call only; use
    setFileCategory() to change the current category.

    Thread Safety:
        Not enforced. Use one Conveyor per logical operation, or lock externally:
        category changes from another thread race with in-flight calls.

    Args:
        store: Object store transport
        bucket: Name of the bucket (required)
        fileCategory: Initial category
        verifyAccess: Check that the bucket exists/is accessible right away
        visibility: ACL applied to uploaded objects
        cacheLength: Cache lifetime of uploaded objects, in seconds
        minPartSize: Minimum multipart part size, in bytes
        concurrency: Parallel part uploads / sync transfers
        retryPolicy: Upload retry policy (default: 3 attempts, 0.5s exponential backoff)
        cancelEvent: Event that cancels uploads between attempts and syncs between transfers

    Raises:
        ConveyorConfigError: If bucket is empty
        NotFoundError: If verifyAccess is set and the bucket is not accessible
    """

    def __init__(
        self,
        store: AbstractObjectStore,
        bucket: str,
        fileCategory: Optional[Category] = None,
        verifyAccess: bool = False,
        visibility: str = DEFAULT_VISIBILITY,
        cacheLength: int = DEFAULT_CACHE_LENGTH,
        minPartSize: int = DEFAULT_MIN_PART_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        retryPolicy: Optional[RetryPolicy] = None,
        cancelEvent: Optional[threading.Event] = None,
    ):
        if not bucket:
            raise ConveyorConfigError("Bucket is required")
        if concurrency <= 0:
            raise ConveyorConfigError("Transfer concurrency must be positive")

        self.store = store
        self.context = AddressContext(bucket=bucket).withCategory(fileCategory)
        self.visibility = visibility
        self.cacheLength = cacheLength
        self.minPartSize = minPartSize
        self.concurrency = concurrency
        self.retryPolicy = retryPolicy or RetryPolicy()
        self.cancelEvent = cancelEvent

        if verifyAccess:
            self.verifyAccess()

    @property
    def bucket(self) -> str:
        return self.context.bucket

    @property
    def fileCategory(self) -> Optional[Category]:
        return self.context.category

    def verifyAccess(self) -> None:
        """
        Make sure the bucket exists and we have access to it.

        Raises:
            NotFoundError: If the bucket is not found or not accessible
        """
        if not self.store.bucketExists(self.bucket):
            raise NotFoundError(f"S3 Bucket {self.bucket} not found in list of buckets")

    def setFileCategory(self, category: Optional[Category]) -> Optional[Category]:
        """
        Set the current category.

        None and the literal "undefined" are ignored, so JavaScript clients
        can't confound the category system.

        Returns:
            The current category after the call
        """
        self.context = self.context.withCategory(category)
        return self.context.category

    def setBucket(self, bucket: Optional[str]) -> str:
        """
        Set the bucket, ignoring None.

        Returns:
            The current bucket after the call
        """
        self.context = self.context.withBucket(bucket)
        return self.context.bucket

    def getCategoryPath(self, category: Optional[Category] = None) -> Optional[str]:
        """Get the category path with a trailing '/', or None if no category applies."""
        return address.categoryPath(self.context, category)

    def getObjectKey(self, filename: str, category: Optional[Category] = None) -> str:
        """Get the object key of filename under category (or the current category)."""
        return address.objectKey(self.context, filename, category)

    def getBaseS3Url(self, secure: bool = False) -> str:
        """Get the base URL of the current bucket."""
        return address.baseUrl(self.context, secure)

    def getFullS3Url(self, fileName: str, category: Optional[Category] = None, secure: bool = False) -> str:
        """Get the full public URL of an object."""
        return address.fullUrl(self.context, fileName, category, secure)

    def getApiUploadRaw(self, uploadParam: Any) -> Optional[bytes]:
        """
        Get the raw data from an API upload.

        Args:
            uploadParam: Uploaded file (object or mapping with a "path"/"tmp_name"),
                or base64-encoded file data

        Returns:
            The raw data, or None if there is no file or its format is unsupported

        Raises:
            InvalidUploadError: If a base64 string could not be decoded
        """
        if isinstance(uploadParam, str):
            try:
                return base64.b64decode(uploadParam, validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidUploadError(f"Invalid base64 upload data: {e}") from e

        if isinstance(uploadParam, Mapping):
            path = uploadParam.get("tmp_name") or uploadParam.get("path")
            if path is None:
                return None
            with open(path, "rb") as f:
                return f.read()

        if uploadParam is None:
            return None

        if getUploadStream(uploadParam) is None:
            logger.warning(f"Unsupported API upload of type {type(uploadParam).__name__}")
            return None

        return readUploadBytes(uploadParam)

    def getObjectRawInfo(self, filename: str, category: Optional[Category] = None) -> Dict[str, Any]:
        """
        Get an object's raw head info.

        Raises:
            NotFoundError: If no such object exists
            TransportError: If the lookup fails
        """
        key = address.objectKey(self.context, filename, category)
        return self.store.head(self.bucket, key)

    def getObjectInfo(self, filename: str, category: Optional[Category] = None) -> ObjectMetadata:
        """
        Get an object's extended info.

        Returns:
            ObjectMetadata with name, creation timestamp, md5 hash, mime type,
            size in bytes/KB/MB and the full URL

        Raises:
            NotFoundError: If no such object exists
            TransportError: If the lookup fails
        """
        context = self.context
        rawInfo = self.store.head(context.bucket, address.objectKey(context, filename, category))

        size = int(rawInfo.get("ContentLength", 0))
        lastModified = rawInfo.get("LastModified")
        return {
            "file_name": str(filename),
            "time_created": int(toTimestamp(lastModified)) if lastModified is not None else 0,
            "file_hash": {
                "md5": str(rawInfo.get("ETag", "")).strip('"'),
            },
            "mime_type": str(rawInfo.get("ContentType", "")),
            "size": {
                "bytes": size,
                "kilobytes": round(size / 1024, 1),
                "megabytes": round(size / 1024 / 1024, 1),
            },
            "url": address.fullUrl(context, filename, category),
        }

    def objectExists(self, filename: str, category: Optional[Category] = None) -> bool:
        """Check if an object exists. Transport failures are still raised."""
        try:
            self.getObjectRawInfo(filename, category)
            return True
        except NotFoundError:
            return False

    def getObjectRaw(self, filename: str, category: Optional[Category] = None) -> Optional[bytes]:
        """
        Get an object's raw data.

        Returns:
            The object data, or None on any store-level failure
        """
        key = address.objectKey(self.context, filename, category)
        try:
            return self.store.get(self.bucket, key)
        except NotFoundError:
            logger.warning(f"Object not found: {self.bucket}/{key}")
        except TransportError as e:
            logger.error(f"Failed to get object {self.bucket}/{key}: {e}")
        return None

    def stashObject(
        self, filename: str, category: Optional[Category] = None, tmpPrefix: str = "s3-file-"
    ) -> Optional[str]:
        """
        Download an object to a new temporary file.

        The caller owns the returned file and must remove it.

        Returns:
            Absolute path of the temporary file, or None if no such object exists
        """
        context = self.context
        key = address.objectKey(context, filename, category)
        fd, tmpPath = tempfile.mkstemp(prefix=tmpPrefix)
        os.close(fd)

        try:
            self.store.download(context.bucket, key, tmpPath)
            return tmpPath
        except NotFoundError:
            os.remove(tmpPath)
            logger.warning(f"Cannot stash missing object: {context.bucket}/{key}")
            return None
        except Exception:
            os.remove(tmpPath)
            raise

    def deleteObject(self, filename: str) -> bool:
        """
        Delete an object of the current category.

        Returns:
            True if the delete succeeded, False if the object did not exist
        """
        key = address.objectKey(self.context, filename)
        try:
            self.store.delete(self.bucket, key)
        except NotFoundError:
            logger.warning(f"Object not found for deletion: {self.bucket}/{key}")
            return False

        logger.debug(f"Deleted object {self.bucket}/{key}")
        return True

    def syncLocalDirectory(self, directory: str, category: Optional[Category] = None, download: bool = False) -> None:
        """
        Sync a local directory with the objects under a category.

        Args:
            directory: Local directory
            category: Category for this sync (default: current category)
            download: Fetch remote objects instead of sending local files

        Raises:
            NotFoundError: If directory does not exist
            TransportError: If a transfer fails
            ConveyanceCancelledError: If the cancel event was set during the sync
        """
        if not os.path.isdir(directory):
            raise NotFoundError(f"Directory {directory} does not exist")

        context = self.context
        keyPrefix = address.categoryPath(context, category) or ""
        direction = SyncDirection.DOWNLOAD if download else SyncDirection.UPLOAD

        transferred = self.store.sync(
            direction,
            directory,
            context.bucket,
            keyPrefix,
            self.concurrency,
            acl=None if download else self.visibility,
            cancelEvent=self.cancelEvent,
        )
        logger.info(f"Synced {directory} ({direction}) with {context.bucket}/{keyPrefix}: {len(transferred)} objects")

    def uploadRaw(self, data: UploadData, name: Optional[str], mimeType: Optional[str] = None) -> bool:
        """
        Upload an object from raw data.

        Args:
            data: Raw bytes or a readable binary stream
            name: Name of the new object, keyed under the current category
            mimeType: Content-Type of the object (i.e. image/jpeg)

        Returns:
            True once the store reports the upload complete

        Raises:
            AddressError: If no name was provided (before any transport call)
            RetryExhaustedError: If every allowed attempt failed
            ConveyanceCancelledError: If the cancel event was set
        """
        if not name:
            raise AddressError("No name provided")

        context = self.context
        key = address.objectKey(context, name)
        return self._putObject(context, key, self._makeStreamFactory(data), self._buildUploadArgs(mimeType))

    def _buildUploadArgs(self, mimeType: Optional[str]) -> Dict[str, Any]:
        """Build ACL, cache and content-type options for an upload."""
        extraArgs: Dict[str, Any] = {}
        if mimeType is not None:
            extraArgs["ContentType"] = mimeType

        extraArgs["CacheControl"] = f"max-age={self.cacheLength}, public"
        extraArgs["Expires"] = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(
            seconds=self.cacheLength
        )
        extraArgs["ACL"] = self.visibility
        return extraArgs

    def _makeStreamFactory(self, data: UploadData) -> Callable[[], BinaryIO]:
        """Return a callable producing a fresh stream of data for every attempt."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            payload = bytes(data)
            return lambda: io.BytesIO(payload)

        if data.seekable():
            start = data.tell()

            def rewind() -> BinaryIO:
                data.seek(start)
                return data

            return rewind

        payload = data.read()
        return lambda: io.BytesIO(payload)

    def _putObject(
        self,
        context: AddressContext,
        key: str,
        streamFactory: Callable[[], BinaryIO],
        extraArgs: Dict[str, Any],
    ) -> bool:
        """Upload with bounded retries."""
        maxAttempts = self.retryPolicy.maxAttempts
        lastError: Optional[TransportError] = None

        for attempt in range(maxAttempts):
            self._checkCancelled()
            try:
                self.store.put(streamFactory(), context.bucket, key, extraArgs, self.minPartSize, self.concurrency)
                logger.debug(f"Uploaded object {context.bucket}/{key}")
                return True
            except TransportError as e:
                lastError = e
                logger.warning(f"Upload of {context.bucket}/{key} failed on attempt {attempt + 1}/{maxAttempts}: {e}")

            if attempt + 1 < maxAttempts:
                delay = self.retryPolicy.getDelay(attempt)
                logger.debug(f"Retrying in {delay} seconds...")
                self._sleep(delay)

        logger.error(f"Upload of {context.bucket}/{key} failed after {maxAttempts} attempts")
        raise RetryExhaustedError(
            f"Upload of '{key}' failed after {maxAttempts} attempts: {lastError}",
            attempts=maxAttempts,
            originalError=lastError,
        )

    def _checkCancelled(self) -> None:
        if self.cancelEvent is not None and self.cancelEvent.is_set():
            raise ConveyanceCancelledError("Conveyance cancelled")

    def _sleep(self, delay: float) -> None:
        if self.cancelEvent is None:
            time.sleep(delay)
        elif self.cancelEvent.wait(delay):
            raise ConveyanceCancelledError("Conveyance cancelled while waiting to retry")
