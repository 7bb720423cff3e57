from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

try:
    from .documentation import documents
except ImportError:  # pragma: no cover - fallback for direct execution
    from tests.documentation import documents

import shadow_highlight as sh  # noqa: E402  # pylint: disable=wrong-import-position
from shadow_highlight.color import bgr_to_lab, lab_to_bgr  # noqa: E402  # pylint: disable=wrong-import-position
from shadow_highlight.filter import (  # noqa: E402  # pylint: disable=wrong-import-position
    CORRECTION_STRENGTH,
    TONAL_FLOOR,
    FilterSettings,
    ShadowHighlightFilter,
    correct_luminance,
    denormalize_luminance,
    normalize_luminance,
)

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
MID_GRAY = (128, 128, 128)


def _lightness(image: np.ndarray) -> np.ndarray:
    return bgr_to_lab(image)[..., 0]


def _round_trip(image: np.ndarray) -> np.ndarray:
    return lab_to_bgr(bgr_to_lab(image))


def test_package_exports_filter():
    assert "ShadowHighlightFilter" in sh.__all__
    assert sh.ShadowHighlightFilter is ShadowHighlightFilter


def test_defaults():
    tool = ShadowHighlightFilter()

    assert tool.shadow_amount == pytest.approx(0.3)
    assert tool.highlight_amount == pytest.approx(0.3)
    assert tool.tonal_width == pytest.approx(0.5)
    assert tool.blur_radius == pytest.approx(15.0)


@documents("Out-of-range configuration is clamped, never rejected")
def test_constructor_clamps_every_parameter():
    tool = ShadowHighlightFilter(shadows=5.0, highlights=-2.0, width=3.0, radius=-10.0)

    assert tool.shadow_amount == 1.0
    assert tool.highlight_amount == 0.0
    assert tool.tonal_width == 1.0
    assert tool.blur_radius == 0.0


def test_setters_clamp():
    tool = ShadowHighlightFilter()
    tool.set_shadow_amount(0.45)
    tool.set_highlight_amount(1.5)
    tool.set_tonal_width(-0.2)
    tool.set_blur_radius(80.0)

    assert tool.shadow_amount == pytest.approx(0.45)
    assert tool.highlight_amount == 1.0
    assert tool.tonal_width == 0.0
    assert tool.blur_radius == 50.0


def test_filter_settings_dataclass_clamps():
    settings = FilterSettings(shadow_amount=2.0, blur_radius=99.0)

    assert settings.shadow_amount == 1.0
    assert settings.blur_radius == 50.0


def test_settings_property_is_a_copy():
    tool = ShadowHighlightFilter(shadows=0.4)
    snapshot = tool.settings
    snapshot.shadow_amount = 0.9

    assert tool.shadow_amount == pytest.approx(0.4)


def test_settings_report_uses_percent_for_amounts():
    tool = ShadowHighlightFilter(shadows=0.25, highlights=0.5, width=0.4, radius=10.0)
    report = tool.settings_report()

    assert report.shadow_amount_percent == pytest.approx(25.0)
    assert report.highlight_amount_percent == pytest.approx(50.0)
    assert report.tonal_width == pytest.approx(0.4)
    assert report.blur_radius == pytest.approx(10.0)

    text = tool.describe_settings()
    assert "Shadow Amount: 25%" in text
    assert "Highlight Amount: 50%" in text
    assert "Blur Radius: 10 px" in text


def test_presets_cover_the_comparison_runs():
    assert {"shadows_50", "highlights_40", "balanced_30_20", "strong_70_50", "optimal"} <= set(sh.PRESETS)
    assert sh.PRESETS["optimal"] == FilterSettings(0.2, 0.2, 0.4, 10.0)


def test_from_settings_copies_values():
    settings = FilterSettings(shadow_amount=0.7, highlight_amount=0.5, tonal_width=0.3, blur_radius=4.0)
    tool = ShadowHighlightFilter.from_settings(settings)

    assert tool.settings == settings


def test_luminance_normalisation_round_trips():
    lightness = np.array([[0.0, 127.5, 255.0]], dtype=np.float32)
    normalised = normalize_luminance(lightness)

    assert np.allclose(normalised, [[0.0, 0.5, 1.0]])
    assert np.allclose(denormalize_luminance(normalised), lightness)


def test_correct_luminance_formula():
    lum = np.array([[0.2]], dtype=np.float32)
    shadows = np.array([[0.5]], dtype=np.float32)
    highlights = np.array([[0.0]], dtype=np.float32)

    corrected = correct_luminance(lum, shadows, highlights, 0.5, 1.0)

    expected = 0.2 + 0.5 * 0.5 * 0.8 * CORRECTION_STRENGTH
    assert corrected[0, 0] == pytest.approx(expected, abs=1e-6)


@documents("Correction never moves a pixel past its tonal floor or ceiling")
def test_correct_luminance_respects_dynamic_range():
    rng = np.random.default_rng(41)
    lum = rng.random((16, 16), dtype=np.float32)
    ones = np.ones_like(lum)

    lifted = correct_luminance(lum, ones, np.zeros_like(lum), 1.0, 0.0)
    pulled = correct_luminance(lum, np.zeros_like(lum), ones, 0.0, 1.0)

    assert np.all(lifted <= 1.0 - (1.0 - lum) * TONAL_FLOOR + 1e-6)
    assert np.all(lifted >= lum - 1e-6)
    assert np.all(pulled >= lum * TONAL_FLOOR - 1e-6)
    assert np.all(pulled <= lum + 1e-6)


def test_correct_luminance_is_identity_without_amounts():
    lum = np.linspace(0.0, 1.0, 11, dtype=np.float32).reshape(1, -1)
    ones = np.ones_like(lum)

    assert np.array_equal(correct_luminance(lum, ones, ones, 0.0, 0.0), lum)


@pytest.mark.parametrize(
    "image",
    [
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((0, 4, 3), dtype=np.uint8),
        np.zeros((4, 4), dtype=np.uint8),
        np.zeros((4, 4, 4), dtype=np.uint8),
    ],
)
def test_apply_rejects_empty_or_malformed_images(image):
    with pytest.raises(sh.InvalidInputError):
        ShadowHighlightFilter().apply(image)


def test_apply_preserves_shape_dtype_and_input():
    rng = np.random.default_rng(43)
    image = rng.integers(0, 256, size=(10, 14, 3), dtype=np.uint8)
    snapshot = image.copy()

    result = ShadowHighlightFilter().apply(image)

    assert result.shape == image.shape
    assert result.dtype == np.uint8
    assert np.array_equal(image, snapshot)
    assert result is not image


@documents("Zero amounts leave the image equal to its Lab round trip")
@pytest.mark.parametrize("radius", [0.0, 15.0])
def test_neutral_correction_matches_round_trip(radius):
    rng = np.random.default_rng(47)
    image = rng.integers(0, 256, size=(12, 12, 3), dtype=np.uint8)

    result = ShadowHighlightFilter(shadows=0.0, highlights=0.0, radius=radius).apply(image)

    diff = np.abs(result.astype(int) - _round_trip(image).astype(int))
    assert int(diff.max()) <= 1


@documents("Black is lifted, white and mid-gray stay put when only shadows are corrected")
def test_two_by_two_shadow_scenario():
    image = np.array([[BLACK, WHITE], [MID_GRAY, MID_GRAY]], dtype=np.uint8)
    reference = _lightness(_round_trip(image))

    result = ShadowHighlightFilter(shadows=0.5, highlights=0.0, width=0.5, radius=0.0).apply(image)
    lightness = _lightness(result)
    shift = lightness - reference

    assert shift[0, 0] > 20.0
    assert abs(shift[0, 1]) < 1.0
    assert abs(shift[1, 0]) < shift[0, 0]
    assert abs(shift[1, 1]) < shift[0, 0]


def test_highlight_correction_darkens_bright_pixels():
    image = np.full((6, 6, 3), 245, dtype=np.uint8)
    image[:3] = 60

    result = ShadowHighlightFilter(shadows=0.0, highlights=1.0, width=0.5, radius=2.0).apply(image)

    assert int(result[5, 5, 0]) < 245
    # Dark half is outside the highlight range and keeps its value.
    assert abs(int(result[0, 0, 0]) - 60) <= 1


def test_correction_preserves_neutral_colour_balance():
    ramp = np.linspace(0, 255, 16, dtype=np.uint8)
    image = np.repeat(np.stack([ramp, ramp, ramp], axis=-1)[None, :, :], 4, axis=0)

    result = ShadowHighlightFilter(shadows=0.8, highlights=0.6, width=0.8, radius=3.0).apply(image)

    channels = result.astype(int)
    assert int(np.max(np.abs(channels[..., 0] - channels[..., 2]))) <= 1
    assert int(np.max(np.abs(channels[..., 1] - channels[..., 2]))) <= 1


def test_apply_uses_settings_at_call_time():
    image = np.zeros((4, 4, 3), dtype=np.uint8)
    tool = ShadowHighlightFilter(shadows=0.0, highlights=0.0, radius=0.0)
    untouched = tool.apply(image)

    tool.set_shadow_amount(1.0)
    lifted = tool.apply(image)

    assert int(untouched.max()) <= 1
    assert int(lifted.min()) > int(untouched.max())
