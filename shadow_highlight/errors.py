"""Exception types raised by the tonal correction pipeline."""
from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised when an image, plane set or kernel request cannot be processed."""


class ImageLoadError(RuntimeError):
    """Raised when a source image exists but cannot be decoded."""


__all__ = ["ImageLoadError", "InvalidInputError"]
