"""
Abstract object store interface

This module defines the abstract base class that all object store transports must implement.
It provides a consistent interface for network operations across different store types.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Dict, List, Optional

from ..models import SyncDirection


class AbstractObjectStore(ABC):
    """
    Abstract base class for object store transports.

    All transport implementations must inherit from this class and implement
    all abstract methods. This ensures a consistent interface across different
    store types (S3, in-memory, etc.).

    Implementations must raise NotFoundError when a bucket or key does not exist
    and wrap every other failure in TransportError.
    """

    @abstractmethod
    def put(
        self,
        stream: BinaryIO,
        bucket: str,
        key: str,
        extraArgs: Dict[str, Any],
        minPartSize: int,
        concurrency: int,
    ) -> None:
        """
        Upload a stream under the specified key.

        Objects larger than minPartSize are sent as multipart uploads with up to
        `concurrency` parts in flight. A failed multipart upload is aborted before
        the error is raised. Existing objects are overwritten.

        Args:
            stream: Readable binary stream positioned at the start of the data
            bucket: Destination bucket
            key: Destination object key
            extraArgs: Object options (ACL, CacheControl, Expires, ContentType)
            minPartSize: Minimum multipart part size in bytes
            concurrency: Number of parallel part uploads

        Raises:
            TransportError: If the upload fails
        """
        pass

    @abstractmethod
    def get(self, bucket: str, key: str) -> bytes:
        """
        Retrieve object data.

        Raises:
            NotFoundError: If the key does not exist
            TransportError: If the retrieval fails
        """
        pass

    @abstractmethod
    def download(self, bucket: str, key: str, path: str) -> None:
        """
        Save object data into a local file.

        Raises:
            NotFoundError: If the key does not exist
            TransportError: If the download fails
        """
        pass

    @abstractmethod
    def head(self, bucket: str, key: str) -> Dict[str, Any]:
        """
        Get raw object metadata.

        Returns:
            Head response with at least ContentLength, ContentType, ETag and LastModified

        Raises:
            NotFoundError: If the key does not exist
            TransportError: If the lookup fails
        """
        pass

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        """
        Delete an object.

        Raises:
            NotFoundError: If the key does not exist (stores that can tell)
            TransportError: If the deletion fails
        """
        pass

    @abstractmethod
    def sync(
        self,
        direction: SyncDirection,
        directory: str,
        bucket: str,
        keyPrefix: str,
        concurrency: int,
        acl: Optional[str] = None,
        cancelEvent: Optional[threading.Event] = None,
    ) -> List[str]:
        """
        Synchronize a local directory with every object under keyPrefix.

        Only new or changed files (different size, or newer source) are transferred.

        Args:
            direction: UPLOAD sends local files, DOWNLOAD fetches remote objects
            directory: Existing local directory
            bucket: Remote bucket
            keyPrefix: Key prefix matching the directory root ("" for bucket root)
            concurrency: Number of parallel transfers
            acl: ACL to set on uploaded objects
            cancelEvent: Stop scheduling transfers once this event is set

        Returns:
            List of transferred object keys

        Raises:
            ConveyanceCancelledError: If cancelled before all transfers were scheduled
            TransportError: If any transfer fails
        """
        pass

    @abstractmethod
    def bucketExists(self, bucket: str) -> bool:
        """
        Check that the bucket exists and is accessible.

        Raises:
            TransportError: If the check itself fails
        """
        pass
