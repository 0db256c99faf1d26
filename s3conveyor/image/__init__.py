"""
Image conveyance: resized variants of one image uploaded as separate objects.
"""

from .conveyor import ImageConveyor
from .resizer import PrecomputedResizer, Resizer, VariantSource

__all__ = ["ImageConveyor", "PrecomputedResizer", "Resizer", "VariantSource"]
