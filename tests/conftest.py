"""
Pytest configuration and common fixtures for S3 Conveyor tests.

This module provides shared fixtures for testing the conveyor, its transports
and the manager facade. All fixtures follow camelCase naming convention.
"""

from unittest.mock import Mock

import pytest

from s3conveyor.conveyor import Conveyor
from s3conveyor.file import ConveyedFile, FileSource
from s3conveyor.models import RetryPolicy
from s3conveyor.transport.abstract import AbstractObjectStore
from s3conveyor.transport.memory import InMemoryObjectStore

# Smallest valid PNG header + IHDR chunk start, enough for content sniffing
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde"


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def memoryStore() -> InMemoryObjectStore:
    """
    Create an in-memory object store with the "media" bucket.

    Returns:
        InMemoryObjectStore: Empty store
    """
    return InMemoryObjectStore(buckets=["media"])


@pytest.fixture
def mockStore() -> Mock:
    """
    Create a fully mocked object store.

    Use this when a test needs to count transport calls or inject failures.

    Returns:
        Mock: Mocked AbstractObjectStore
    """
    return Mock(spec=AbstractObjectStore)


# ============================================================================
# Conveyor Fixtures
# ============================================================================


@pytest.fixture
def noDelayRetryPolicy() -> RetryPolicy:
    """Retry policy with 3 attempts and no backoff delay."""
    return RetryPolicy(maxAttempts=3, backoffFactor=0.0)


@pytest.fixture
def conveyor(memoryStore, noDelayRetryPolicy) -> Conveyor:
    """
    Create a Conveyor for bucket "media" backed by the in-memory store.

    Example:
        def testUpload(conveyor, memoryStore):
            conveyor.uploadRaw(b"data", "f.txt")
            assert memoryStore.get("media", "f.txt") == b"data"
    """
    return Conveyor(memoryStore, "media", retryPolicy=noDelayRetryPolicy)


@pytest.fixture
def mockConveyor(mockStore, noDelayRetryPolicy) -> Conveyor:
    """Create a Conveyor for bucket "media" over a mocked store."""
    return Conveyor(mockStore, "media", retryPolicy=noDelayRetryPolicy)


# ============================================================================
# File Fixtures
# ============================================================================


@pytest.fixture
def pngFile() -> ConveyedFile:
    """
    Create a PNG ConveyedFile with a fixed obfuscated name.

    Returns:
        ConveyedFile: name "abc123", extension "png", mime type "image/png"
    """
    return ConveyedFile(
        source=FileSource.BLOB,
        raw=PNG_BYTES,
        mimeType="image/png",
        extension="png",
        filename="abc123",
    )
