"""Splitting Lab working images into planes and merging them back."""
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .errors import InvalidInputError


def split_channels(lab: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split a three-channel image into independent (L, a, b) planes.

    Args:
        lab: ``(H, W, 3)`` working image.

    Returns:
        Three ``float32`` planes of shape ``(H, W)``. Each plane is a copy, so
        writing to it never touches ``lab``.

    Raises:
        InvalidInputError: If ``lab`` is not a three-channel image.
    """
    lab = np.asarray(lab)
    if lab.ndim != 3 or lab.shape[2] != 3:
        raise InvalidInputError(f"Lab image must have 3 channels, got shape {lab.shape}")
    return tuple(np.array(lab[..., index], dtype=np.float32) for index in range(3))  # type: ignore[return-value]


def merge_channels(planes: Sequence[np.ndarray]) -> np.ndarray:
    """Combine three equally sized planes into one ``(H, W, 3)`` image.

    Raises:
        InvalidInputError: If the number of planes is not three, a plane is not
            two-dimensional, or the planes differ in size.
    """
    if len(planes) != 3:
        raise InvalidInputError(f"Lab needs 3 channels, got {len(planes)}")
    arrays = [np.asarray(plane) for plane in planes]
    for index, plane in enumerate(arrays):
        if plane.ndim != 2:
            raise InvalidInputError(f"Plane {index} must be two-dimensional, got shape {plane.shape}")
    shape = arrays[0].shape
    if any(plane.shape != shape for plane in arrays[1:]):
        sizes = ", ".join(str(plane.shape) for plane in arrays)
        raise InvalidInputError(f"Lab planes must share one size, got {sizes}")
    return np.stack(arrays, axis=-1).astype(np.float32)


__all__ = ["merge_channels", "split_channels"]
