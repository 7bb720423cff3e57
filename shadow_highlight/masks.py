"""Shadow and highlight membership masks derived from normalised luminance."""
from __future__ import annotations

import logging

import numpy as np

from .blur import MIN_BLUR_RADIUS, fast_gaussian_blur

LOGGER = logging.getLogger("shadow_highlight")

# Fraction of the shadow threshold below which a pixel is fully in shadow.
SHADOW_CORE = 0.3
# Fraction of the highlight threshold where the highlight ramp starts.
HIGHLIGHT_RAMP_START = 0.9
MAX_MASK_BLUR_RADIUS = 20.0


def shadow_threshold(tonal_width: float) -> float:
    return 0.5 * tonal_width


def highlight_threshold(tonal_width: float) -> float:
    return 1.0 - 0.5 * tonal_width


def raw_shadow_mask(luminance: np.ndarray, tonal_width: float) -> np.ndarray:
    """Per-pixel shadow membership before blurring.

    Pixels up to ``0.3 * threshold`` are fully in shadow, pixels above the
    threshold are not, and the band in between falls off as ``1 - t**2``.
    """
    lum = np.asarray(luminance, dtype=np.float32)
    threshold = shadow_threshold(tonal_width)
    core = threshold * SHADOW_CORE
    span = threshold - core

    t = np.zeros_like(lum)
    np.divide(lum - core, span, out=t, where=(lum > core) & (lum <= threshold))
    t = np.clip(t, 0.0, 1.0)
    mask = np.where(lum <= threshold, 1.0 - t ** 2, 0.0)
    return mask.astype(np.float32)


def raw_highlight_mask(luminance: np.ndarray, tonal_width: float) -> np.ndarray:
    """Per-pixel highlight membership before blurring.

    Pixels at or above the threshold are fully highlighted and the band from
    ``0.9 * threshold`` up to it ramps linearly from 0 to 1.
    """
    lum = np.asarray(luminance, dtype=np.float32)
    threshold = highlight_threshold(tonal_width)
    start = threshold * HIGHLIGHT_RAMP_START
    span = threshold - start

    t = np.zeros_like(lum)
    np.divide(lum - start, span, out=t, where=(lum >= start) & (lum < threshold))
    t = np.clip(t, 0.0, 1.0)
    mask = np.where(lum >= threshold, 1.0, t)
    return mask.astype(np.float32)


def normalize_mask(mask: np.ndarray) -> np.ndarray:
    """Scale ``mask`` so its peak is 1; an all-zero mask is returned as is."""
    mask = np.asarray(mask, dtype=np.float32)
    peak = float(mask.max()) if mask.size else 0.0
    if peak <= 0.0:
        return mask.copy()
    return (mask / peak).astype(np.float32)


def finish_mask(mask: np.ndarray, blur_radius: float) -> np.ndarray:
    """Soften a raw mask and renormalise its peak back to 1.

    Blurring lowers the peak of small isolated regions, so the renormalisation
    restores full strength at the strongest point.
    """
    if blur_radius > MIN_BLUR_RADIUS:
        mask = fast_gaussian_blur(mask, min(blur_radius, MAX_MASK_BLUR_RADIUS))
    return normalize_mask(mask)


def shadow_mask(luminance: np.ndarray, tonal_width: float, blur_radius: float) -> np.ndarray:
    """Build the finished shadow mask for a luminance plane in [0, 1]."""
    mask = finish_mask(raw_shadow_mask(luminance, tonal_width), blur_radius)
    LOGGER.debug("Shadow mask width=%.2f coverage=%.3f", tonal_width, float(mask.mean()) if mask.size else 0.0)
    return mask


def highlight_mask(luminance: np.ndarray, tonal_width: float, blur_radius: float) -> np.ndarray:
    """Build the finished highlight mask for a luminance plane in [0, 1]."""
    mask = finish_mask(raw_highlight_mask(luminance, tonal_width), blur_radius)
    LOGGER.debug("Highlight mask width=%.2f coverage=%.3f", tonal_width, float(mask.mean()) if mask.size else 0.0)
    return mask


__all__ = [
    "finish_mask",
    "highlight_mask",
    "highlight_threshold",
    "normalize_mask",
    "raw_highlight_mask",
    "raw_shadow_mask",
    "shadow_mask",
    "shadow_threshold",
]
