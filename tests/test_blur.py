from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

try:
    from .documentation import documents
except ImportError:  # pragma: no cover - fallback for direct execution
    from tests.documentation import documents

from shadow_highlight.blur import (  # noqa: E402  # pylint: disable=wrong-import-position
    convolve,
    fast_blur_schedule,
    fast_gaussian_blur,
    gaussian_blur,
    gaussian_kernel,
    gaussian_kernel_cached,
    kernel_size_for_radius,
)
from shadow_highlight.errors import InvalidInputError  # noqa: E402  # pylint: disable=wrong-import-position


@documents("Every Gaussian kernel sums to one")
@settings(max_examples=60, deadline=None)
@given(
    size=st.integers(min_value=1, max_value=41),
    sigma=st.floats(min_value=0.1, max_value=50.0, allow_nan=False, allow_infinity=False),
)
def test_kernel_is_normalised(size, sigma):
    kernel = gaussian_kernel(size, sigma)
    assert float(kernel.sum()) == pytest.approx(1.0, abs=1e-5)


@pytest.mark.parametrize("requested, expected", [(1, 3), (2, 3), (3, 3), (4, 5), (7, 7), (10, 11)])
def test_kernel_size_is_odd_and_at_least_three(requested, expected):
    assert gaussian_kernel(requested, 1.0).shape == (expected, expected)


def test_kernel_peaks_at_centre_and_is_symmetric():
    kernel = gaussian_kernel(7, 1.5)

    assert np.unravel_index(np.argmax(kernel), kernel.shape) == (3, 3)
    assert np.allclose(kernel, kernel.T)
    assert np.allclose(kernel, kernel[::-1, ::-1])


def test_kernel_copy_is_writable_and_cache_is_read_only():
    cached = gaussian_kernel_cached(5, 1.0)
    copy = gaussian_kernel(5, 1.0)

    copy[0, 0] = 42.0
    assert not cached.flags.writeable
    assert gaussian_kernel_cached(5, 1.0)[0, 0] != 42.0


@pytest.mark.parametrize("sigma", [0.0, -1.0])
def test_kernel_rejects_non_positive_sigma(sigma):
    with pytest.raises(InvalidInputError):
        gaussian_kernel(5, sigma)


@pytest.mark.parametrize(
    "radius, expected",
    [(0.1, 3), (1.0, 3), (1.3, 5), (1.5, 5), (2.3, 7), (3.0, 7), (5.3, 13), (7.5, 17), (10.0, 21)],
)
def test_kernel_size_for_radius(radius, expected):
    assert kernel_size_for_radius(radius) == expected


@documents("Blurring below radius 0.1 is a no-op copy")
@pytest.mark.parametrize("radius", [0.0, 0.05, 0.099])
def test_blur_below_minimum_radius_returns_copy(radius):
    rng = np.random.default_rng(3)
    plane = rng.random((5, 7), dtype=np.float32)

    blurred = gaussian_blur(plane, radius)

    assert np.array_equal(blurred, plane)
    assert blurred is not plane


def test_convolve_keeps_constant_planes_constant_at_borders():
    plane = np.full((6, 9), 0.7, dtype=np.float32)
    result = convolve(plane, gaussian_kernel(5, 2.0))

    assert result.dtype == np.float32
    assert np.allclose(result, 0.7, atol=1e-6)


def test_convolve_renormalises_corner_by_available_weight():
    plane = np.array([[1.0, 0.0], [0.0, 0.0]], dtype=np.float32)
    kernel = np.ones((3, 3), dtype=np.float32) / 9.0

    result = convolve(plane, kernel)

    # Every pixel sees the whole 2x2 plane, so each output is the plane mean.
    assert np.allclose(result, 0.25)


def test_convolve_passes_value_through_when_no_weight_is_in_bounds():
    plane = np.array([[5.0]], dtype=np.float32)
    corners_only = np.array([[1.0, 0.0, 1.0], [0.0, 0.0, 0.0], [1.0, 0.0, 1.0]], dtype=np.float32)

    assert convolve(plane, corners_only)[0, 0] == pytest.approx(5.0)


def test_convolve_does_not_modify_input():
    rng = np.random.default_rng(5)
    plane = rng.random((4, 4), dtype=np.float32)
    snapshot = plane.copy()
    convolve(plane, gaussian_kernel(3, 1.0))

    assert np.array_equal(plane, snapshot)


def test_convolve_rejects_even_kernels():
    with pytest.raises(InvalidInputError):
        convolve(np.zeros((3, 3), dtype=np.float32), np.ones((2, 2), dtype=np.float32))


@documents("The separable blur equals a direct 2-D border-aware convolution")
@pytest.mark.parametrize("radius", [0.5, 1.0, 2.5, 4.0])
def test_gaussian_blur_matches_direct_convolution(radius):
    rng = np.random.default_rng(17)
    plane = rng.random((9, 13), dtype=np.float32)

    size = kernel_size_for_radius(radius)
    expected = convolve(plane, gaussian_kernel(size, radius))
    actual = gaussian_blur(plane, radius)

    assert actual.dtype == np.float32
    assert np.allclose(actual, expected, atol=1e-5)


def test_gaussian_blur_handles_kernel_larger_than_plane():
    plane = np.array([[0.0, 1.0]], dtype=np.float32)
    blurred = gaussian_blur(plane, 10.0)

    assert blurred.shape == plane.shape
    assert np.all((blurred >= 0.0) & (blurred <= 1.0))
    assert blurred[0, 0] == pytest.approx(blurred[0, 1], abs=0.05)


def test_gaussian_blur_smooths_a_step():
    plane = np.zeros((5, 10), dtype=np.float32)
    plane[:, 5:] = 1.0
    blurred = gaussian_blur(plane, 2.0)

    assert 0.0 < blurred[2, 4] < 0.5 < blurred[2, 5] < 1.0


@pytest.mark.parametrize(
    "radius, expected",
    [(1.0, (1, 1.0)), (8.0, (1, 8.0)), (12.0, (2, 6.0)), (20.0, (2, 10.0)), (30.0, (3, 10.0)), (50.0, (3, 50.0 / 3.0))],
)
def test_fast_blur_schedule(radius, expected):
    passes, pass_radius = fast_blur_schedule(radius)
    assert passes == expected[0]
    assert pass_radius == pytest.approx(expected[1])


@pytest.mark.parametrize("radius", [0.0, 0.5, 0.99])
def test_fast_blur_below_one_is_a_no_op(radius):
    plane = np.eye(4, dtype=np.float32)
    blurred = fast_gaussian_blur(plane, radius)

    assert np.array_equal(blurred, plane)
    assert blurred is not plane


def test_fast_blur_runs_scheduled_passes():
    rng = np.random.default_rng(23)
    plane = rng.random((8, 8), dtype=np.float32)

    expected = gaussian_blur(gaussian_blur(plane, 6.0), 6.0)
    assert np.allclose(fast_gaussian_blur(plane, 12.0), expected, atol=1e-6)


def test_fast_blur_single_pass_matches_blur():
    rng = np.random.default_rng(29)
    plane = rng.random((8, 8), dtype=np.float32)

    assert np.allclose(fast_gaussian_blur(plane, 3.0), gaussian_blur(plane, 3.0))


def test_fractional_radius_rounds_kernel_size_up():
    rng = np.random.default_rng(31)
    plane = rng.random((9, 9), dtype=np.float32)

    blurred = gaussian_blur(plane, 1.3)

    assert np.allclose(blurred, convolve(plane, gaussian_kernel(5, 1.3)), atol=1e-5)
    assert not np.allclose(blurred, convolve(plane, gaussian_kernel(3, 1.3)), atol=1e-5)
