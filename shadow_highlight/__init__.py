"""Shadow/highlight tonal correction for 8-bit colour images.

The filter lightens shadows and darkens highlights while leaving colour
balance alone: it works only on the lightness channel of a CIE L*a*b*
version of the image, steered by soft shadow and highlight masks.

Module Organization
-------------------

color
    sRGB <-> Lab conversion using an 8-bit-like Lab encoding.

channels
    Splitting Lab images into planes and merging them back.

blur
    Gaussian kernels, border-aware convolution and the multi-pass fast blur.

masks
    Shadow and highlight membership masks built from normalised luminance.

filter
    ``ShadowHighlightFilter``, its settings and presets.

io_utils
    Pillow-backed image loading and atomic saving.

pipeline
    File processing, preset comparison mosaics and pixel diagnostics.

cli
    Command-line interface.

Example Usage
-------------

    from shadow_highlight import ShadowHighlightFilter, load_image, save_image

    image = load_image(Path("input.jpg"))
    tool = ShadowHighlightFilter(shadows=0.5, highlights=0.2)
    save_image(Path("output.jpg"), tool.apply(image))
"""
from __future__ import annotations

import logging

from .blur import convolve, fast_gaussian_blur, gaussian_blur, gaussian_kernel, gaussian_kernel_cached
from .channels import merge_channels, split_channels
from .cli import build_settings, main, parse_args, run
from .color import bgr_to_lab, lab_to_bgr
from .errors import ImageLoadError, InvalidInputError
from .filter import (
    PRESETS,
    FilterSettings,
    SettingsReport,
    ShadowHighlightFilter,
    correct_luminance,
)
from .io_utils import load_image, save_image, staged_write
from .masks import highlight_mask, shadow_mask
from .pipeline import (
    PixelSample,
    build_comparison_mosaic,
    process_single_image,
    run_presets,
    sample_pixels,
    write_comparison,
)

LOGGER = logging.getLogger("shadow_highlight")

__all__ = [
    "FilterSettings",
    "ImageLoadError",
    "InvalidInputError",
    "PRESETS",
    "PixelSample",
    "SettingsReport",
    "ShadowHighlightFilter",
    "bgr_to_lab",
    "build_comparison_mosaic",
    "build_settings",
    "convolve",
    "correct_luminance",
    "fast_gaussian_blur",
    "gaussian_blur",
    "gaussian_kernel",
    "gaussian_kernel_cached",
    "highlight_mask",
    "lab_to_bgr",
    "load_image",
    "main",
    "merge_channels",
    "parse_args",
    "process_single_image",
    "run",
    "run_presets",
    "sample_pixels",
    "save_image",
    "shadow_mask",
    "split_channels",
    "staged_write",
    "write_comparison",
]
