"""
Data models for the conveyor package

TypedDicts describe shapes returned to callers, dataclasses hold
configuration and per-call results.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Dict, List, TypedDict

# Defaults for uploaded objects
DEFAULT_VISIBILITY = "public-read"
DEFAULT_CACHE_LENGTH = 31104000  # 360 days, in seconds
DEFAULT_MIN_PART_SIZE = 25 * 1024 * 1024
DEFAULT_CONCURRENCY = 5


class SyncDirection(StrEnum):
    """Direction of a bulk directory sync"""

    UPLOAD = "upload"
    DOWNLOAD = "download"


class FileHash(TypedDict):
    """Checksums of a stored object"""

    md5: str


class FileSize(TypedDict):
    """Object size in several units"""

    bytes: int
    kilobytes: float  # Rounded to 1 decimal
    megabytes: float  # Rounded to 1 decimal


class ObjectMetadata(TypedDict):
    """Extended info of a stored object, rebuilt on every query"""

    file_name: str
    time_created: int  # Unix timestamp
    file_hash: FileHash
    mime_type: str
    size: FileSize
    url: str


@dataclass
class RetryPolicy:
    """
    Bounded retry configuration for uploads.

    Delay before attempt n+1 (n starting at 0) is
    min(backoffFactor * 2**n, maxDelay) seconds.

    Attributes:
        maxAttempts: Total number of attempts, including the first one
        backoffFactor: Base delay in seconds
        maxDelay: Upper bound for a single delay in seconds
    """

    maxAttempts: int = 3
    backoffFactor: float = 0.5
    maxDelay: float = 30.0

    def __post_init__(self):
        """Validate configuration values"""
        if self.maxAttempts <= 0:
            raise ValueError("maxAttempts must be positive")
        if self.backoffFactor < 0:
            raise ValueError("backoffFactor must not be negative")
        if self.maxDelay < 0:
            raise ValueError("maxDelay must not be negative")

    def getDelay(self, attempt: int) -> float:
        """Get delay in seconds after the given (0-based) failed attempt."""
        return min(self.backoffFactor * (2**attempt), self.maxDelay)


@dataclass
class VariantUploadReport:
    """
    Per-variant outcome of a multi-variant image upload.

    Attributes:
        results: Upload outcome by variant key, in production order
    """

    results: Dict[str, bool] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        """Logical AND of all variant outcomes (True for no variants)."""
        return all(self.results.values())

    @property
    def failedVariants(self) -> List[str]:
        return [name for name, ok in self.results.items() if not ok]

    def __bool__(self) -> bool:
        return self.succeeded
