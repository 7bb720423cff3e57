"""Shadow/highlight correction filter and its settings."""
from __future__ import annotations

import dataclasses
import logging
from typing import Dict

import numpy as np

from .channels import merge_channels, split_channels
from .color import bgr_to_lab, lab_to_bgr
from .errors import InvalidInputError
from .masks import highlight_mask, shadow_mask

LOGGER = logging.getLogger("shadow_highlight")

# Share of the available headroom that a full-strength correction may use.
CORRECTION_STRENGTH = 0.7
# Fraction of a pixel's distance to black (or white) that must survive.
TONAL_FLOOR = 0.3

AMOUNT_RANGE = (0.0, 1.0)
TONAL_WIDTH_RANGE = (0.0, 1.0)
BLUR_RADIUS_RANGE = (0.0, 50.0)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` into ``[minimum, maximum]`` and return it as ``float``."""
    return float(max(minimum, min(maximum, value)))


@dataclasses.dataclass
class FilterSettings:
    """Holds the parameters for a shadow/highlight correction.

    Values outside their range are clamped rather than rejected, so any
    combination of inputs yields a usable configuration.

    Attributes:
        shadow_amount: Shadow lightening strength (0.0 to 1.0).
        highlight_amount: Highlight darkening strength (0.0 to 1.0).
        tonal_width: How much of the tonal range counts as shadow or
            highlight (0.0 to 1.0).
        blur_radius: Radius used to soften the tonal masks (0.0 to 50.0).
    """

    shadow_amount: float = 0.3
    highlight_amount: float = 0.3
    tonal_width: float = 0.5
    blur_radius: float = 15.0

    def __post_init__(self) -> None:
        self._clamp()

    def _clamp(self) -> None:
        self.shadow_amount = clamp(self.shadow_amount, *AMOUNT_RANGE)
        self.highlight_amount = clamp(self.highlight_amount, *AMOUNT_RANGE)
        self.tonal_width = clamp(self.tonal_width, *TONAL_WIDTH_RANGE)
        self.blur_radius = clamp(self.blur_radius, *BLUR_RADIUS_RANGE)


PRESETS: Dict[str, FilterSettings] = {
    "default": FilterSettings(),
    "shadows_50": FilterSettings(shadow_amount=0.5, highlight_amount=0.0),
    "highlights_40": FilterSettings(shadow_amount=0.0, highlight_amount=0.4),
    "balanced_30_20": FilterSettings(shadow_amount=0.3, highlight_amount=0.2),
    "strong_70_50": FilterSettings(shadow_amount=0.7, highlight_amount=0.5),
    "optimal": FilterSettings(shadow_amount=0.2, highlight_amount=0.2, tonal_width=0.4, blur_radius=10.0),
}


@dataclasses.dataclass(frozen=True)
class SettingsReport:
    """Read-only snapshot of a filter's settings; amounts are in percent."""

    shadow_amount_percent: float
    highlight_amount_percent: float
    tonal_width: float
    blur_radius: float

    def __str__(self) -> str:
        return (
            "Current Shadow/Highlights parameters:\n"
            f"Shadow Amount: {self.shadow_amount_percent:g}%\n"
            f"Highlight Amount: {self.highlight_amount_percent:g}%\n"
            f"Tonal Width: {self.tonal_width:g}\n"
            f"Blur Radius: {self.blur_radius:g} px"
        )


def normalize_luminance(lightness: np.ndarray) -> np.ndarray:
    """Map an encoded L plane from [0, 255] to [0, 1]."""
    return (np.asarray(lightness, dtype=np.float32) / 255.0).astype(np.float32)


def denormalize_luminance(luminance: np.ndarray) -> np.ndarray:
    """Map a luminance plane from [0, 1] back to the encoded [0, 255] range."""
    return (np.asarray(luminance, dtype=np.float32) * 255.0).astype(np.float32)


def correct_luminance(
    luminance: np.ndarray,
    shadows: np.ndarray,
    highlights: np.ndarray,
    shadow_amount: float,
    highlight_amount: float,
) -> np.ndarray:
    """Lift shadows and pull down highlights of a normalised luminance plane.

    The lift is proportional to the remaining headroom ``1 - lum`` and the
    pull to ``lum`` itself. The result is clamped to
    ``[lum * TONAL_FLOOR, 1 - (1 - lum) * TONAL_FLOOR]`` so no pixel can swap
    places with the tones around it.

    Args:
        luminance: Normalised luminance in [0, 1].
        shadows: Shadow mask in [0, 1].
        highlights: Highlight mask in [0, 1].
        shadow_amount: Shadow lightening strength (0.0 to 1.0).
        highlight_amount: Highlight darkening strength (0.0 to 1.0).

    Returns:
        Corrected float32 luminance plane.
    """
    lum = np.asarray(luminance, dtype=np.float32)
    lift = shadow_amount * shadows * (1.0 - lum) * CORRECTION_STRENGTH
    pull = highlight_amount * highlights * lum * CORRECTION_STRENGTH
    corrected = lum + lift - pull
    lower = lum * TONAL_FLOOR
    upper = 1.0 - (1.0 - lum) * TONAL_FLOOR
    return np.clip(corrected, lower, upper).astype(np.float32)


class ShadowHighlightFilter:
    """Corrects shadows and highlights of a BGR image in Lab space.

    Only the lightness channel is changed; ``a`` and ``b`` pass through
    untouched so the colour balance of the image is preserved.

    Example:
        >>> tool = ShadowHighlightFilter(shadows=0.5, highlights=0.2)
        >>> corrected = tool.apply(image)  # doctest: +SKIP
    """

    def __init__(
        self,
        shadows: float = 0.3,
        highlights: float = 0.3,
        width: float = 0.5,
        radius: float = 15.0,
    ) -> None:
        self._settings = FilterSettings(
            shadow_amount=shadows,
            highlight_amount=highlights,
            tonal_width=width,
            blur_radius=radius,
        )

    @classmethod
    def from_settings(cls, settings: FilterSettings) -> "ShadowHighlightFilter":
        """Create a filter from a :class:`FilterSettings` instance."""
        return cls(
            shadows=settings.shadow_amount,
            highlights=settings.highlight_amount,
            width=settings.tonal_width,
            radius=settings.blur_radius,
        )

    @property
    def settings(self) -> FilterSettings:
        """Copy of the current settings."""
        return dataclasses.replace(self._settings)

    @property
    def shadow_amount(self) -> float:
        return self._settings.shadow_amount

    @property
    def highlight_amount(self) -> float:
        return self._settings.highlight_amount

    @property
    def tonal_width(self) -> float:
        return self._settings.tonal_width

    @property
    def blur_radius(self) -> float:
        return self._settings.blur_radius

    def set_shadow_amount(self, amount: float) -> None:
        self._settings.shadow_amount = clamp(amount, *AMOUNT_RANGE)

    def set_highlight_amount(self, amount: float) -> None:
        self._settings.highlight_amount = clamp(amount, *AMOUNT_RANGE)

    def set_tonal_width(self, width: float) -> None:
        self._settings.tonal_width = clamp(width, *TONAL_WIDTH_RANGE)

    def set_blur_radius(self, radius: float) -> None:
        self._settings.blur_radius = clamp(radius, *BLUR_RADIUS_RANGE)

    def settings_report(self) -> SettingsReport:
        """Return the current settings with both amounts scaled to percent."""
        return SettingsReport(
            shadow_amount_percent=self._settings.shadow_amount * 100.0,
            highlight_amount_percent=self._settings.highlight_amount * 100.0,
            tonal_width=self._settings.tonal_width,
            blur_radius=self._settings.blur_radius,
        )

    def describe_settings(self) -> str:
        return str(self.settings_report())

    def apply(self, image: np.ndarray) -> np.ndarray:
        """Apply the correction to a BGR ``uint8`` image.

        Args:
            image: ``(H, W, 3)`` BGR image. It is not modified.

        Returns:
            New ``(H, W, 3)`` ``uint8`` BGR image.

        Raises:
            InvalidInputError: If the image is empty or not three-channel.
        """
        image = np.asarray(image)
        if image.size == 0:
            raise InvalidInputError("Input image is empty")
        if image.ndim != 3 or image.shape[2] != 3:
            raise InvalidInputError(f"Input image must have 3 channels, got shape {image.shape}")

        settings = self.settings
        lab = bgr_to_lab(image)
        lightness, a_plane, b_plane = split_channels(lab)
        luminance = normalize_luminance(lightness)

        shadows = shadow_mask(luminance, settings.tonal_width, settings.blur_radius)
        highlights = highlight_mask(luminance, settings.tonal_width, settings.blur_radius)
        corrected = correct_luminance(
            luminance,
            shadows,
            highlights,
            settings.shadow_amount,
            settings.highlight_amount,
        )
        LOGGER.debug(
            "Corrected %sx%s image: mean luminance %.4f -> %.4f",
            image.shape[1],
            image.shape[0],
            float(luminance.mean()),
            float(corrected.mean()),
        )

        merged = merge_channels([denormalize_luminance(corrected), a_plane, b_plane])
        return lab_to_bgr(merged)


__all__ = [
    "CORRECTION_STRENGTH",
    "FilterSettings",
    "PRESETS",
    "SettingsReport",
    "ShadowHighlightFilter",
    "TONAL_FLOOR",
    "clamp",
    "correct_luminance",
    "denormalize_luminance",
    "normalize_luminance",
]
