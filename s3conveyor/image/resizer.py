"""
Resizer interface

The conveyor does not scale pixels itself: a VariantSource produces the
variants of an image and the ImageConveyor conveys them. Resizer
implementations plug in the actual image library, PrecomputedResizer wraps
variants produced elsewhere.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..file import ConveyedFile

# Variant configuration keys understood by ImageConveyor
SIZE_MIME_TYPE = "mime-type"
SIZE_MIME_TYPE_ALIAS = "mime_type"
SIZE_FORMAT = "format"

SizesConfig = Mapping[str, Mapping[str, Any]]


class VariantSource(ABC):
    """
    Yields the variants of one source image.

    Iterating a VariantSource yields (variantKey, variantBytes) pairs in a
    deterministic, finite order. Iteration may be single-pass: callers must
    not iterate twice.

    Args:
        file: Source image
        sizes: Variant configuration by variant key. Besides resizer-specific
            keys (width, height, ...), a variant may declare "mime-type"
            (or "mime_type") and "format" overrides for the produced data.
        crop: Whether variants should be cropped to the exact size
    """

    def __init__(self, file: ConveyedFile, sizes: SizesConfig, crop: bool = False):
        self.file = file
        self.sizes: Dict[str, Mapping[str, Any]] = dict(sizes)
        self.crop = crop

    @abstractmethod
    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        pass


class Resizer(VariantSource):
    """Produces every configured variant, in sizes order, by calling resize()."""

    @abstractmethod
    def resize(self, variantKey: str, config: Mapping[str, Any]) -> bytes:
        """
        Produce one variant.

        Args:
            variantKey: Name of the variant (i.e. "thumb")
            config: Configuration of the variant

        Returns:
            Encoded image data of the variant
        """
        pass

    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        for variantKey, config in self.sizes.items():
            yield variantKey, self.resize(variantKey, config)


class PrecomputedResizer(VariantSource):
    """
    Variants produced elsewhere (i.e. by a worker process).

    Wraps an iterable of (variantKey, variantBytes) pairs and is single-pass
    whenever that iterable is.
    """

    def __init__(
        self,
        file: ConveyedFile,
        variants: Iterable[Tuple[str, bytes]],
        sizes: Optional[SizesConfig] = None,
    ):
        super().__init__(file, sizes or {})
        self._variants = iter(variants)

    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        return self._variants
