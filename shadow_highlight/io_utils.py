"""Image loading and saving for the shadow/highlight tools.

The correction core works on BGR ``uint8`` arrays. Pillow hands out RGB, so
this module is the one place where channel order is swapped on the way in and
out.

Key Components
--------------

staged_write
    Context manager that stages a write and moves it into place atomically.

load_image
    Read any Pillow-supported raster into a BGR ``uint8`` array.

save_image
    Write a BGR ``uint8`` array, choosing the format from the file suffix.
"""
from __future__ import annotations

import contextlib
import logging
import os
import uuid
from pathlib import Path
from typing import Iterator

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageLoadError, InvalidInputError

LOGGER = logging.getLogger("shadow_highlight")


@contextlib.contextmanager
def staged_write(destination: Path) -> Iterator[Path]:
    """Yield a hidden sibling path and move it onto ``destination`` on success.

    The staged file is removed if the body raises or the final move fails, so
    ``destination`` is either untouched or fully written.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    staged = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.tmp")
    try:
        yield staged
        os.replace(staged, destination)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            staged.unlink()
        raise


def rgb_to_bgr(arr: np.ndarray) -> np.ndarray:
    """Swap the first and last channel of an ``(H, W, 3)`` array."""
    return np.ascontiguousarray(np.asarray(arr)[..., ::-1])


bgr_to_rgb = rgb_to_bgr


def format_for_path(path: Path) -> str:
    """Return the Pillow format name registered for ``path``'s suffix."""
    suffix = path.suffix.lower()
    image_format = Image.registered_extensions().get(suffix)
    if image_format is None:
        raise ValueError(f"Unsupported image file extension: {path.suffix or '<none>'} ({path})")
    return image_format


def load_image(path: Path) -> np.ndarray:
    """Load a raster image as a BGR ``uint8`` array.

    Args:
        path: Image file readable by Pillow.

    Returns:
        ``(H, W, 3)`` BGR array. Greyscale, palette and alpha images are
        converted to plain RGB first.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ImageLoadError: If Pillow cannot decode the file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    try:
        with Image.open(path) as image:
            LOGGER.debug("Loaded %s (%s, %sx%s)", path, image.mode, image.width, image.height)
            rgb = np.asarray(image.convert("RGB"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"Unable to decode image {path}: {exc}") from exc
    return rgb_to_bgr(rgb)


def save_image(path: Path, image: np.ndarray) -> None:
    """Save a BGR ``uint8`` array, staging the write through a temporary file."""
    path = Path(path)
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise InvalidInputError(f"Only 3-channel images can be saved, got shape {arr.shape}")
    image_format = format_for_path(path)
    rgb = bgr_to_rgb(np.clip(arr, 0, 255).astype(np.uint8))
    with staged_write(path) as staged_path:
        Image.fromarray(rgb).save(staged_path, format=image_format)
    LOGGER.debug("Saved %s as %s", path, image_format)


__all__ = [
    "staged_write",
    "bgr_to_rgb",
    "format_for_path",
    "load_image",
    "rgb_to_bgr",
    "save_image",
]
