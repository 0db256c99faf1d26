"""
In-memory object store implementation

This module provides a dict-backed object store for tests and local development.
It mirrors the observable behaviour of the S3 store (head fields, not-found
handling, change-detecting sync) without any network access.
"""

import datetime
import hashlib
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Tuple

from ..exceptions import ConveyanceCancelledError, NotFoundError
from ..models import SyncDirection
from .abstract import AbstractObjectStore
from .utils import FileState, needsTransfer, relativeKey, safeLocalPath, scanLocalDirectory, setLocalMtime

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    """Single object kept by InMemoryObjectStore"""

    data: bytes
    options: Dict[str, Any] = field(default_factory=dict)
    lastModified: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))

    @property
    def etag(self) -> str:
        return '"' + hashlib.md5(self.data).hexdigest() + '"'


class InMemoryObjectStore(AbstractObjectStore):
    """
    Dict-based object store.

    Buckets are created on first upload or passed to the constructor.
    Every stored object keeps the options it was uploaded with, so tests can
    assert on ACL and cache headers.

    Example:
        >>> store = InMemoryObjectStore(buckets=["media"])
        >>> store.put(io.BytesIO(b"data"), "media", "a/b.txt", {"ContentType": "text/plain"}, 1024, 5)
        >>> store.get("media", "a/b.txt")
        b'data'
    """

    def __init__(self, buckets: Optional[Iterable[str]] = None):
        self.buckets: set[str] = set(buckets or [])
        self.objects: Dict[Tuple[str, str], StoredObject] = {}
        self._lock = threading.RLock()

    def _getObject(self, bucket: str, key: str) -> StoredObject:
        with self._lock:
            obj = self.objects.get((bucket, key))
        if obj is None:
            raise NotFoundError(f"No such object '{key}' in bucket '{bucket}'")
        return obj

    def put(
        self,
        stream: BinaryIO,
        bucket: str,
        key: str,
        extraArgs: Dict[str, Any],
        minPartSize: int,
        concurrency: int,
    ) -> None:
        data = stream.read()
        with self._lock:
            self.buckets.add(bucket)
            self.objects[(bucket, key)] = StoredObject(data=data, options=dict(extraArgs))
        logger.debug(f"Stored {len(data)} bytes at {bucket}/{key}")

    def get(self, bucket: str, key: str) -> bytes:
        return self._getObject(bucket, key).data

    def download(self, bucket: str, key: str, path: str) -> None:
        Path(path).write_bytes(self._getObject(bucket, key).data)

    def head(self, bucket: str, key: str) -> Dict[str, Any]:
        obj = self._getObject(bucket, key)
        ret: Dict[str, Any] = {
            "ContentLength": len(obj.data),
            "ContentType": obj.options.get("ContentType", "binary/octet-stream"),
            "ETag": obj.etag,
            "LastModified": obj.lastModified,
        }
        for option in ("CacheControl", "Expires"):
            if option in obj.options:
                ret[option] = obj.options[option]
        return ret

    def delete(self, bucket: str, key: str) -> None:
        with self._lock:
            if self.objects.pop((bucket, key), None) is None:
                raise NotFoundError(f"No such object '{key}' in bucket '{bucket}'")

    def bucketExists(self, bucket: str) -> bool:
        return bucket in self.buckets

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
        with self._lock:
            remote = {
                key: FileState(size=len(obj.data), mtime=obj.lastModified.timestamp())
                for (objBucket, key), obj in self.objects.items()
                if objBucket == bucket and key.startswith(keyPrefix)
            }

        transferred: List[str] = []
        if direction == SyncDirection.UPLOAD:
            for rel, state in scanLocalDirectory(directory).items():
                key = keyPrefix + rel
                if not needsTransfer(state, remote.get(key)):
                    continue
                self._checkCancelled(cancelEvent, transferred)
                options = {"ACL": acl} if acl else {}
                localPath = Path(directory) / rel
                with open(localPath, "rb") as f:
                    self.put(f, bucket, key, options, 0, concurrency)
                setLocalMtime(localPath, self._getObject(bucket, key).lastModified.timestamp())
                transferred.append(key)
        else:
            local = scanLocalDirectory(directory)
            for key, state in remote.items():
                rel = relativeKey(key, keyPrefix)
                if rel is None:
                    continue
                target = safeLocalPath(directory, rel)
                if target is None or not needsTransfer(state, local.get(rel)):
                    continue
                self._checkCancelled(cancelEvent, transferred)
                target.parent.mkdir(parents=True, exist_ok=True)
                self.download(bucket, key, str(target))
                setLocalMtime(target, state.mtime)
                transferred.append(key)

        return transferred

    def _checkCancelled(self, cancelEvent: Optional[threading.Event], transferred: List[str]) -> None:
        if cancelEvent is not None and cancelEvent.is_set():
            raise ConveyanceCancelledError(f"Sync cancelled after {len(transferred)} transfers")
