"""
S3 object store implementation

This module provides an object store for AWS S3 and S3-compatible storage services.
Uses boto3 library for S3 operations with proper error handling.
"""

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, BinaryIO, Dict, List, Optional

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import ClientError

from ..exceptions import ConveyanceCancelledError, NotFoundError, TransportError
from ..models import SyncDirection
from .abstract import AbstractObjectStore
from .utils import (
    FileState,
    needsTransfer,
    relativeKey,
    safeLocalPath,
    scanLocalDirectory,
    setLocalMtime,
    toTimestamp,
)

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 60


def isNotFoundError(error: Exception) -> bool:
    """Check if a boto3 error means the bucket or key does not exist."""
    if not isinstance(error, ClientError):
        return False
    return str(error.response.get("Error", {}).get("Code", "")) in NOT_FOUND_CODES


class S3ObjectStore(AbstractObjectStore):
    """
    S3-based object store using boto3.

    Works against AWS S3 or S3-compatible storage services (e.g., Yandex Object Storage).

    Features:
    - Multipart uploads through the boto3 transfer manager (aborted on failure)
    - Connect/read timeouts on every call, so a hung endpoint surfaces as TransportError
    - Threaded bulk directory sync in either direction
    - 404-like errors are raised as NotFoundError, everything else as TransportError

    Args:
        endpoint: S3 endpoint URL (None for AWS default)
        region: AWS region (e.g., "us-east-1", "ru-central1")
        keyId: AWS access key ID (None to use the default credential chain)
        keySecret: AWS secret access key
        connectTimeout: Socket connect timeout in seconds
        readTimeout: Socket read timeout in seconds

    Raises:
        TransportError: If S3 client initialization fails

    Example:
        >>> store = S3ObjectStore(region="us-east-1", keyId="AKIA...", keySecret="...")
        >>> store.put(io.BytesIO(b"data"), "my-bucket", "a/b.txt", {}, 25 * 1024 * 1024, 5)
        >>> store.get("my-bucket", "a/b.txt")
        b'data'
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
        keyId: Optional[str] = None,
        keySecret: Optional[str] = None,
        connectTimeout: float = DEFAULT_CONNECT_TIMEOUT,
        readTimeout: float = DEFAULT_READ_TIMEOUT,
    ):
        try:
            self.client = boto3.client(
                "s3",
                endpoint_url=endpoint,
                region_name=region,
                aws_access_key_id=keyId,
                aws_secret_access_key=keySecret,
                config=Config(connect_timeout=connectTimeout, read_timeout=readTimeout),
            )
        except Exception as e:
            raise TransportError(f"Failed to initialize S3 client: {e}", originalError=e)

    def _wrapError(self, error: Exception, action: str, bucket: str, key: str) -> Exception:
        """Translate a boto3 error into NotFoundError or TransportError."""
        if isNotFoundError(error):
            return NotFoundError(f"No such object '{key}' in bucket '{bucket}'")
        return TransportError(f"Failed to {action} '{key}' in bucket '{bucket}': {error}", originalError=error)

    def put(
        self,
        stream: BinaryIO,
        bucket: str,
        key: str,
        extraArgs: Dict[str, Any],
        minPartSize: int,
        concurrency: int,
    ) -> None:
        transferConfig = TransferConfig(
            multipart_threshold=minPartSize,
            multipart_chunksize=minPartSize,
            max_concurrency=concurrency,
            use_threads=concurrency > 1,
        )
        try:
            # The transfer manager aborts the multipart upload itself when a part fails
            self.client.upload_fileobj(stream, bucket, key, ExtraArgs=extraArgs, Config=transferConfig)
        except Exception as e:
            raise TransportError(f"Failed to upload '{key}' to bucket '{bucket}': {e}", originalError=e)

    def get(self, bucket: str, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except Exception as e:
            raise self._wrapError(e, "get", bucket, key) from e

    def download(self, bucket: str, key: str, path: str) -> None:
        try:
            self.client.download_file(bucket, key, path)
        except Exception as e:
            raise self._wrapError(e, "download", bucket, key) from e

    def head(self, bucket: str, key: str) -> Dict[str, Any]:
        try:
            response = self.client.head_object(Bucket=bucket, Key=key)
        except Exception as e:
            raise self._wrapError(e, "head", bucket, key) from e
        return {k: v for k, v in response.items() if k != "ResponseMetadata"}

    def delete(self, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except Exception as e:
            raise self._wrapError(e, "delete", bucket, key) from e

    def bucketExists(self, bucket: str) -> bool:
        try:
            self.client.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES or code in ("403", "AccessDenied"):
                return False
            raise TransportError(f"Failed to check bucket '{bucket}': {e}", originalError=e)
        except Exception as e:
            raise TransportError(f"Failed to check bucket '{bucket}': {e}", originalError=e)

    def _listObjects(self, bucket: str, keyPrefix: str) -> Dict[str, FileState]:
        """List every object under keyPrefix, following pagination."""
        ret: Dict[str, FileState] = {}
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=keyPrefix):
                for obj in page.get("Contents", []):
                    ret[obj["Key"]] = FileState(size=int(obj["Size"]), mtime=toTimestamp(obj["LastModified"]))
        except Exception as e:
            raise self._wrapError(e, "list objects under", bucket, keyPrefix) from e
        return ret

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
        remote = self._listObjects(bucket, keyPrefix)
        # key -> callable performing the transfer
        plan: Dict[str, Any] = {}

        if direction == SyncDirection.UPLOAD:
            extraArgs = {"ACL": acl} if acl else None
            for rel, state in scanLocalDirectory(directory).items():
                key = keyPrefix + rel
                if needsTransfer(state, remote.get(key)):
                    localPath = os.path.join(directory, rel)
                    plan[key] = (self._uploadFrom, (localPath, bucket, key, extraArgs), {})
        else:
            local = scanLocalDirectory(directory)
            for key, state in remote.items():
                rel = relativeKey(key, keyPrefix)
                if rel is None:
                    continue
                target = safeLocalPath(directory, rel)
                if target is None:
                    logger.warning(f"Skipping object '{key}': resolves outside of {directory}")
                    continue
                if needsTransfer(state, local.get(rel)):
                    plan[key] = (self._downloadInto, (bucket, key, target, state.mtime), {})

        logger.debug(f"Sync {direction} of {directory} <-> s3://{bucket}/{keyPrefix}: {len(plan)} transfers")

        transferred: List[str] = []
        cancelled = False
        with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
            futures: Dict[Future, str] = {}
            for key, (func, args, kwargs) in plan.items():
                if cancelEvent is not None and cancelEvent.is_set():
                    cancelled = True
                    break
                futures[executor.submit(func, *args, **kwargs)] = key

            for future in as_completed(futures):
                key = futures[future]
                try:
                    future.result()
                except Exception as e:
                    for pending in futures:
                        pending.cancel()
                    raise TransportError(f"Failed to sync object '{key}': {e}", originalError=e)
                transferred.append(key)

        if cancelled:
            raise ConveyanceCancelledError(f"Sync cancelled after {len(transferred)} of {len(plan)} transfers")

        return transferred

    def _uploadFrom(self, localPath: str, bucket: str, key: str, extraArgs: Optional[Dict[str, Any]]) -> None:
        self.client.upload_file(localPath, bucket, key, ExtraArgs=extraArgs)
        # S3 stamps the object with its own LastModified, mirror it locally
        lastModified = self.client.head_object(Bucket=bucket, Key=key).get("LastModified")
        if lastModified is not None:
            setLocalMtime(localPath, toTimestamp(lastModified))

    def _downloadInto(self, bucket: str, key: str, target, mtime: float) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        self.client.download_file(bucket, key, str(target))
        setLocalMtime(target, mtime)
