"""
Factory functions building object stores and conveyors from configuration.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

from .conveyor import Conveyor
from .exceptions import ConveyorConfigError
from .models import DEFAULT_CACHE_LENGTH, DEFAULT_CONCURRENCY, DEFAULT_MIN_PART_SIZE, DEFAULT_VISIBILITY, RetryPolicy
from .transport.abstract import AbstractObjectStore
from .transport.memory import InMemoryObjectStore
from .transport.s3 import DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT, S3ObjectStore

if TYPE_CHECKING:
    from .config.manager import ConfigManager

logger = logging.getLogger(__name__)


def createObjectStore(config: Dict[str, Any]) -> AbstractObjectStore:
    """
    Create the object store described by the [conveyor] configuration.

    Raises:
        ConveyorConfigError: If the store type is unknown or its configuration is invalid
    """
    storeType = config.get("store", "s3")

    match storeType:
        case "memory":
            store: AbstractObjectStore = InMemoryObjectStore(buckets=[config["bucket"]] if config.get("bucket") else [])
            logger.info("Initialized InMemoryObjectStore, dood!")

        case "s3":
            s3Config = config.get("s3", {})
            # Credentials must come in pairs, else boto3 falls back to its default chain
            if bool(s3Config.get("key-id")) != bool(s3Config.get("key-secret")):
                raise ConveyorConfigError("S3 configuration must set both key-id and key-secret, or neither")

            store = S3ObjectStore(
                endpoint=s3Config.get("endpoint") or None,
                region=s3Config.get("region") or None,
                keyId=s3Config.get("key-id") or None,
                keySecret=s3Config.get("key-secret") or None,
                connectTimeout=float(s3Config.get("connect-timeout", DEFAULT_CONNECT_TIMEOUT)),
                readTimeout=float(s3Config.get("read-timeout", DEFAULT_READ_TIMEOUT)),
            )
            logger.info(f"Initialized S3ObjectStore with endpoint: {s3Config.get('endpoint', 'default')}, dood!")

        case _:
            raise ConveyorConfigError(f"Unknown object store type: {storeType}")

    return store


def createRetryPolicy(config: Dict[str, Any]) -> RetryPolicy:
    """Create a RetryPolicy from the [conveyor.retry] configuration."""
    defaults = RetryPolicy()
    try:
        return RetryPolicy(
            maxAttempts=int(config.get("max-attempts", defaults.maxAttempts)),
            backoffFactor=float(config.get("backoff-factor", defaults.backoffFactor)),
            maxDelay=float(config.get("max-delay", defaults.maxDelay)),
        )
    except (TypeError, ValueError) as e:
        raise ConveyorConfigError(f"Invalid retry configuration: {e}") from e


def createConveyor(configManager: "ConfigManager") -> Conveyor:
    """
    Create a Conveyor from configuration.

    Raises:
        ConveyorConfigError: If configuration is invalid
        NotFoundError: If verify-access is set and the bucket is not accessible
    """
    config = configManager.getConveyorConfig()
    if not config.get("bucket"):
        raise ConveyorConfigError("Bucket is not specified in configuration")

    try:
        cacheLength = int(config.get("cache-length", DEFAULT_CACHE_LENGTH))
        minPartSize = int(config.get("min-part-size", DEFAULT_MIN_PART_SIZE))
        concurrency = int(config.get("concurrency", DEFAULT_CONCURRENCY))
    except (TypeError, ValueError) as e:
        raise ConveyorConfigError(f"Invalid conveyor configuration: {e}") from e

    conveyor = Conveyor(
        store=createObjectStore(config),
        bucket=config["bucket"],
        fileCategory=config.get("category"),
        verifyAccess=bool(config.get("verify-access", False)),
        visibility=config.get("visibility", DEFAULT_VISIBILITY),
        cacheLength=cacheLength,
        minPartSize=minPartSize,
        concurrency=concurrency,
        retryPolicy=createRetryPolicy(config.get("retry", {})),
    )
    logger.info(f"Conveyor initialized for bucket {conveyor.bucket}, dood!")
    return conveyor
