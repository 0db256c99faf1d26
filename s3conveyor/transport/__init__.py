"""
Object store transports

Pluggable network layer used by the conveyor: S3 via boto3, and an
in-memory store for tests and local development.
"""

from .abstract import AbstractObjectStore
from .memory import InMemoryObjectStore
from .s3 import S3ObjectStore

__all__ = ["AbstractObjectStore", "InMemoryObjectStore", "S3ObjectStore"]
