"""sRGB <-> CIE L*a*b* conversion for 8-bit BGR images.

The Lab working image uses an 8-bit-like encoding so that every channel
centres on the same range as the device image:

* ``L`` is rescaled from [0, 100] to [0, 255].
* ``a`` and ``b`` are offset by +128, so neutral colours sit at 128.

Working images are ``float32`` and never clamped; only the conversion back to
device colour clamps and quantises.
"""
from __future__ import annotations

import numpy as np

# D65 reference white.
WHITE_POINT = np.array([0.95047, 1.00000, 1.08883], dtype=np.float64)

# Linear sRGB (D65) -> XYZ and its inverse.
RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
XYZ_TO_RGB = np.array(
    [
        [3.2404542, -1.5371385, -0.4985314],
        [-0.9692660, 1.8760108, 0.0415560],
        [0.0556434, -0.2040259, 1.0572252],
    ],
    dtype=np.float64,
)

SRGB_DECODE_THRESHOLD = 0.04045
SRGB_ENCODE_THRESHOLD = 0.0031308
CIE_DELTA = 6.0 / 29.0

L_SCALE = 255.0 / 100.0
AB_OFFSET = 128.0


def srgb_to_linear(values: np.ndarray) -> np.ndarray:
    """Undo the sRGB transfer curve for values in [0, 1]."""
    return np.where(
        values > SRGB_DECODE_THRESHOLD,
        np.power((values + 0.055) / 1.055, 2.4),
        values / 12.92,
    )


def linear_to_srgb(values: np.ndarray) -> np.ndarray:
    """Apply the sRGB transfer curve to linear values."""
    # Negative linear values take the linear branch, so the power never sees them.
    safe = np.maximum(values, SRGB_ENCODE_THRESHOLD)
    return np.where(
        values > SRGB_ENCODE_THRESHOLD,
        1.055 * np.power(safe, 1.0 / 2.4) - 0.055,
        12.92 * values,
    )


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(
        t > CIE_DELTA ** 3,
        np.cbrt(t),
        t / (3.0 * CIE_DELTA ** 2) + 4.0 / 29.0,
    )


def _lab_f_inverse(t: np.ndarray) -> np.ndarray:
    return np.where(
        t > CIE_DELTA,
        t ** 3,
        3.0 * CIE_DELTA ** 2 * (t - 4.0 / 29.0),
    )


def bgr_to_lab(image: np.ndarray) -> np.ndarray:
    """Convert an 8-bit BGR image to the encoded Lab working space.

    Args:
        image: ``(H, W, 3)`` array in BGR order with values in [0, 255].

    Returns:
        ``(H, W, 3)`` float32 array holding encoded (L, a, b).
    """
    bgr = np.asarray(image, dtype=np.float64) / 255.0
    rgb = bgr[..., ::-1]
    linear = srgb_to_linear(rgb)
    xyz = linear @ RGB_TO_XYZ.T
    fx, fy, fz = np.moveaxis(_lab_f(xyz / WHITE_POINT), -1, 0)

    lab = np.empty(bgr.shape, dtype=np.float32)
    lab[..., 0] = (116.0 * fy - 16.0) * L_SCALE
    lab[..., 1] = 500.0 * (fx - fy) + AB_OFFSET
    lab[..., 2] = 200.0 * (fy - fz) + AB_OFFSET
    return lab


def lab_to_bgr(lab: np.ndarray) -> np.ndarray:
    """Convert an encoded Lab working image back to 8-bit BGR.

    Out-of-gamut colours are clamped to [0, 1] in sRGB before being rounded
    and saturated to ``uint8``.
    """
    lab = np.asarray(lab, dtype=np.float64)
    lightness = lab[..., 0] / L_SCALE
    a_star = lab[..., 1] - AB_OFFSET
    b_star = lab[..., 2] - AB_OFFSET

    fy = (lightness + 16.0) / 116.0
    fx = fy + a_star / 500.0
    fz = fy - b_star / 200.0
    xyz = _lab_f_inverse(np.stack([fx, fy, fz], axis=-1)) * WHITE_POINT

    linear = xyz @ XYZ_TO_RGB.T
    rgb = np.clip(linear_to_srgb(linear), 0.0, 1.0)
    bgr = rgb[..., ::-1]
    return np.clip(np.rint(bgr * 255.0), 0, 255).astype(np.uint8)


__all__ = [
    "AB_OFFSET",
    "CIE_DELTA",
    "L_SCALE",
    "RGB_TO_XYZ",
    "WHITE_POINT",
    "XYZ_TO_RGB",
    "bgr_to_lab",
    "lab_to_bgr",
    "linear_to_srgb",
    "srgb_to_linear",
]
