"""Border-aware Gaussian blur for single-channel planes.

Samples that fall outside the plane are skipped instead of being treated as
zeros, and every output value is divided by the weight that was actually
available. Border pixels therefore stay a weighted average of their real
neighbours instead of darkening towards the edge.
"""
from __future__ import annotations

import functools
import logging
import math
from typing import Tuple

import numpy as np

from .errors import InvalidInputError

LOGGER = logging.getLogger("shadow_highlight")

MIN_BLUR_RADIUS = 0.1
MIN_FAST_BLUR_RADIUS = 1.0


def _normalise_kernel_size(size: int) -> int:
    return max(3, int(size) | 1)


def kernel_size_for_radius(radius: float) -> int:
    """Return the odd kernel size (at least 3) used to blur at ``radius``.

    ``radius * 2 + 1`` is rounded half up to an integer and even sizes are
    bumped to the next odd value.
    """
    return max(3, int(math.floor(radius * 2 + 1 + 0.5)) | 1)


def _validate_sigma(sigma: float) -> float:
    sigma = float(sigma)
    if not sigma > 0.0:
        raise InvalidInputError(f"Gaussian sigma must be positive, got {sigma}")
    return sigma


@functools.lru_cache(maxsize=32)
def _gaussian_kernel_cached(size: int, sigma: float) -> np.ndarray:
    center = size // 2
    ax = np.arange(size, dtype=np.float64) - center
    dy, dx = np.meshgrid(ax, ax, indexing="ij")
    kernel = np.exp(-(dx ** 2 + dy ** 2) / (2.0 * sigma ** 2))
    kernel /= np.sum(kernel)
    cached = kernel.astype(np.float32)
    cached.setflags(write=False)
    return cached


@functools.lru_cache(maxsize=32)
def _gaussian_kernel_1d_cached(size: int, sigma: float) -> np.ndarray:
    center = size // 2
    ax = np.arange(size, dtype=np.float64) - center
    kernel = np.exp(-(ax ** 2) / (2.0 * sigma ** 2))
    kernel /= np.sum(kernel)
    kernel.setflags(write=False)
    return kernel


def gaussian_kernel(size: int, sigma: float) -> np.ndarray:
    """Build a normalised ``size x size`` Gaussian kernel.

    The internal cached kernel is stored in a read-only array. This function
    provides callers with a writable copy so that downstream code can safely
    adjust the kernel without corrupting the cached value.

    Args:
        size: Requested kernel size. Even sizes are bumped to the next odd
            value and anything below 3 becomes 3.
        sigma: Standard deviation in pixels; must be positive.

    Returns:
        Square float32 kernel whose entries sum to 1.

    Raises:
        InvalidInputError: If ``sigma`` is not positive.
    """
    return gaussian_kernel_cached(size, sigma).copy()


def gaussian_kernel_cached(size: int, sigma: float) -> np.ndarray:
    """Return the cached, read-only kernel built by :func:`gaussian_kernel`."""
    return _gaussian_kernel_cached(_normalise_kernel_size(size), _validate_sigma(sigma))


# Expose cache management on the public kernel builder.
gaussian_kernel.cache_clear = _gaussian_kernel_cached.cache_clear  # type: ignore[attr-defined]
gaussian_kernel.cache_info = _gaussian_kernel_cached.cache_info  # type: ignore[attr-defined]


def convolve(plane: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Convolve a plane with a 2-D kernel, renormalising at the borders.

    Every output pixel is ``sum(pixel * weight) / sum(weight)`` over the
    in-bounds part of the kernel window. A pixel whose in-bounds weight sum is
    zero keeps its input value.

    Args:
        plane: ``(H, W)`` input plane. It is never modified.
        kernel: 2-D kernel with odd height and width.

    Returns:
        New float32 plane with the same shape as ``plane``.
    """
    plane = np.asarray(plane, dtype=np.float32)
    kernel = np.asarray(kernel, dtype=np.float64)
    if plane.ndim != 2:
        raise InvalidInputError(f"Convolution expects a single-channel plane, got shape {plane.shape}")
    if kernel.ndim != 2 or kernel.shape[0] % 2 == 0 or kernel.shape[1] % 2 == 0:
        raise InvalidInputError(f"Convolution kernel must be 2-D with odd sides, got shape {kernel.shape}")

    height, width = plane.shape
    radius_y, radius_x = kernel.shape[0] // 2, kernel.shape[1] // 2
    padded = np.zeros((height + 2 * radius_y, width + 2 * radius_x), dtype=np.float64)
    padded[radius_y:radius_y + height, radius_x:radius_x + width] = plane
    inside = np.zeros_like(padded)
    inside[radius_y:radius_y + height, radius_x:radius_x + width] = 1.0

    total = np.zeros((height, width), dtype=np.float64)
    weight_sum = np.zeros((height, width), dtype=np.float64)
    for ky in range(kernel.shape[0]):
        for kx in range(kernel.shape[1]):
            weight = kernel[ky, kx]
            if weight == 0.0:
                continue
            window = (slice(ky, ky + height), slice(kx, kx + width))
            total += weight * padded[window]
            weight_sum += weight * inside[window]

    return _renormalise(plane, total, weight_sum)


def _renormalise(plane: np.ndarray, total: np.ndarray, weight_sum: np.ndarray) -> np.ndarray:
    result = plane.astype(np.float64)
    np.divide(total, weight_sum, out=result, where=weight_sum > 0.0)
    return result.astype(np.float32)


def _zero_padded_convolve(arr: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    """Apply a 1-D convolution along ``axis`` with implicit zeros past the edge."""
    pad_width = [(0, 0)] * arr.ndim
    k = kernel.size // 2
    pad_width[axis] = (k, k)
    padded = np.pad(arr, pad_width, mode="constant")
    return np.apply_along_axis(
        lambda m: np.convolve(m, kernel, mode="valid"), axis=axis, arr=padded
    )


def gaussian_blur(plane: np.ndarray, radius: float) -> np.ndarray:
    """Blur a plane with a Gaussian of ``sigma = radius``.

    A radius below 0.1 returns an unmodified copy. Otherwise the kernel size
    comes from :func:`kernel_size_for_radius`. The 2-D Gaussian is separable
    and the in-bounds part of a window is always a rectangle, so the blur runs
    as two 1-D passes over both the values and the available weight. The
    result matches :func:`convolve` with :func:`gaussian_kernel` up to float
    rounding.
    """
    plane = np.asarray(plane, dtype=np.float32)
    if plane.ndim != 2:
        raise InvalidInputError(f"Blur expects a single-channel plane, got shape {plane.shape}")
    if radius < MIN_BLUR_RADIUS or plane.size == 0:
        return plane.copy()

    size = kernel_size_for_radius(radius)
    kernel = _gaussian_kernel_1d_cached(size, _validate_sigma(radius))
    values = plane.astype(np.float64)
    available = np.ones_like(values)
    for axis in (0, 1):
        values = _zero_padded_convolve(values, kernel, axis)
        available = _zero_padded_convolve(available, kernel, axis)
    LOGGER.debug("Gaussian blur radius=%.2f kernel=%sx%s", radius, size, size)
    return _renormalise(plane, values, available)


def fast_blur_schedule(radius: float) -> Tuple[int, float]:
    """Return ``(passes, pass_radius)`` used by :func:`fast_gaussian_blur`."""
    if radius <= 8.0:
        return 1, float(radius)
    if radius <= 20.0:
        return 2, radius / 2.0
    return 3, radius / 3.0


def fast_gaussian_blur(plane: np.ndarray, radius: float) -> np.ndarray:
    """Approximate a large-radius blur with up to three smaller passes.

    Radii up to 8 use one pass, up to 20 use two passes at half the radius and
    anything larger uses three passes at a third of the radius. Repeated
    Gaussians only approximate a single blur of the nominal radius; the output
    is not expected to match :func:`gaussian_blur` at the same radius.
    """
    plane = np.asarray(plane, dtype=np.float32)
    if radius < MIN_FAST_BLUR_RADIUS:
        return plane.copy()

    passes, pass_radius = fast_blur_schedule(radius)
    LOGGER.debug("Fast blur radius=%.2f: %s pass(es) at %.2f", radius, passes, pass_radius)
    result = plane
    for _ in range(passes):
        result = gaussian_blur(result, pass_radius)
    return result


__all__ = [
    "convolve",
    "fast_blur_schedule",
    "fast_gaussian_blur",
    "gaussian_blur",
    "gaussian_kernel",
    "gaussian_kernel_cached",
    "kernel_size_for_radius",
]
