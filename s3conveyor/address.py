"""
Object addressing: category paths, object keys and public URLs

Everything here is pure string composition over an immutable AddressContext,
no I/O is performed.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Union

from .exceptions import AddressError

S3_SCHEME = "http"
S3_SCHEME_SECURE = "https"
S3_BASE_URL = ".s3.amazonaws.com"

# Clients that never initialized their category tend to send this literally
UNDEFINED_CATEGORY = "undefined"

Category = Union[str, Sequence[Optional[Union[str, int]]]]


def isCategorySet(category: Optional[Category]) -> bool:
    """Check whether a category value should be applied (not None, not "undefined")."""
    return category is not None and category != UNDEFINED_CATEGORY


def flattenCategory(category: Category) -> str:
    """Join a category sequence with '/', dropping None and empty segments."""
    if isinstance(category, str):
        return category
    return "/".join(str(segment) for segment in category if segment is not None and segment != "")


@dataclass(frozen=True)
class AddressContext:
    """
    Bucket and category captured at call time.

    Attributes:
        bucket: Name of the remote bucket
        category: Optional category (single path or sequence of segments)
    """

    bucket: str
    category: Optional[Category] = None

    def withBucket(self, bucket: Optional[str]) -> "AddressContext":
        """Return a context with the bucket replaced, or self if bucket is None."""
        if bucket is None:
            return self
        return replace(self, bucket=bucket)

    def withCategory(self, category: Optional[Category]) -> "AddressContext":
        """Return a context with the category replaced, or self if category is None or "undefined"."""
        if not isCategorySet(category):
            return self
        if not isinstance(category, str):
            category = tuple(category)
        return replace(self, category=category)


def categoryPath(context: AddressContext, category: Optional[Category] = None) -> Optional[str]:
    """
    Get the category path with a trailing '/'.

    Args:
        context: Address context to resolve against
        category: Explicit category for this call, overrides the context one

    Returns:
        The category path ending with '/', or None if no category applies
    """
    resolved = context.withCategory(category).category
    if resolved is None:
        return None

    path = flattenCategory(resolved).strip("/")
    if not path:
        return None
    return path + "/"


def objectKey(context: AddressContext, filename: Optional[str], category: Optional[Category] = None) -> str:
    """
    Build the object key for a filename.

    Raises:
        AddressError: If filename is empty
    """
    if not filename:
        raise AddressError("No name provided")

    path = categoryPath(context, category)
    if path is None:
        return filename
    return path + filename


def baseUrl(context: AddressContext, secure: bool = False) -> str:
    """Get the bucket base URL (always ends with '/')."""
    scheme = S3_SCHEME_SECURE if secure else S3_SCHEME
    return f"{scheme}://{context.bucket}{S3_BASE_URL}/"


def fullUrl(
    context: AddressContext, filename: str, category: Optional[Category] = None, secure: bool = False
) -> str:
    """Get the full public URL of an object."""
    return baseUrl(context, secure) + (categoryPath(context, category) or "") + filename
