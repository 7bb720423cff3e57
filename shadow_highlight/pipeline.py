"""Processing helpers shared between the CLI and integrations.

These wrap :class:`~shadow_highlight.filter.ShadowHighlightFilter` with file
I/O, preset comparison and simple pixel diagnostics.
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .filter import PRESETS, FilterSettings, ShadowHighlightFilter
from .io_utils import bgr_to_rgb, load_image, rgb_to_bgr, save_image

LOGGER = logging.getLogger("shadow_highlight")

DEFAULT_TILE_SIZE = (600, 400)
DEFAULT_SAMPLE_POINTS: Tuple[Tuple[int, int], ...] = ((100, 100), (50, 200), (400, 250))
LABEL_POSITION = (10, 10)
LABEL_COLOR = (255, 255, 255)


@dataclasses.dataclass(frozen=True)
class PixelSample:
    """Original and corrected value of a single pixel.

    Attributes:
        x: Column of the pixel.
        y: Row of the pixel.
        original: BGR triple before correction.
        result: BGR triple after correction.
    """

    x: int
    y: int
    original: Tuple[int, int, int]
    result: Tuple[int, int, int]

    @property
    def original_brightness(self) -> float:
        return brightness(self.original)

    @property
    def result_brightness(self) -> float:
        return brightness(self.result)

    @property
    def brightness_change(self) -> float:
        return self.result_brightness - self.original_brightness


def brightness(pixel: Sequence[float]) -> float:
    """Rec. 601 luma of a BGR pixel."""
    blue, green, red = (float(channel) for channel in pixel[:3])
    return 0.299 * red + 0.587 * green + 0.114 * blue


def sample_pixels(
    original: np.ndarray,
    result: np.ndarray,
    points: Iterable[Tuple[int, int]] = DEFAULT_SAMPLE_POINTS,
) -> List[PixelSample]:
    """Collect before/after values at ``(x, y)`` points inside the image.

    Points outside either image are skipped.
    """
    height = min(original.shape[0], result.shape[0])
    width = min(original.shape[1], result.shape[1])
    samples: List[PixelSample] = []
    for x, y in points:
        if not (0 <= x < width and 0 <= y < height):
            LOGGER.debug("Skipping sample point (%s, %s) outside %sx%s", x, y, width, height)
            continue
        samples.append(
            PixelSample(
                x=x,
                y=y,
                original=tuple(int(v) for v in original[y, x, :3]),  # type: ignore[arg-type]
                result=tuple(int(v) for v in result[y, x, :3]),  # type: ignore[arg-type]
            )
        )
    return samples


def describe_image(image: np.ndarray) -> str:
    """Summarise size, channels and type plus the top-left 3x3 pixels."""
    height, width = image.shape[:2]
    channels = image.shape[2] if image.ndim == 3 else 1
    lines = [
        f"Size: {width}x{height}",
        f"Channels: {channels}",
        f"Type: {image.dtype}",
        f"Size in bytes: {image.nbytes} bytes",
        "Sample pixels:",
    ]
    if channels == 3:
        for y in range(min(3, height)):
            for x in range(min(3, width)):
                blue, green, red = (int(v) for v in image[y, x])
                lines.append(f"Pixel({x},{y}): B={blue}, G={green}, R={red}")
    return "\n".join(lines)


def resize_bilinear(arr: np.ndarray, new_width: int, new_height: int) -> np.ndarray:
    height, width = arr.shape[:2]
    if width == new_width and height == new_height:
        return arr
    x = np.linspace(0, width - 1, new_width, dtype=np.float32)
    y = np.linspace(0, height - 1, new_height, dtype=np.float32)
    x0 = np.floor(x).astype(int)
    x1 = np.clip(x0 + 1, 0, width - 1)
    y0 = np.floor(y).astype(int)
    y1 = np.clip(y0 + 1, 0, height - 1)
    x_weight = (x - x0).astype(np.float32).reshape(1, -1, 1)
    y_weight = (y - y0).astype(np.float32).reshape(-1, 1, 1)

    source = arr.astype(np.float32)
    Ia = source[np.ix_(y0, x0)]
    Ib = source[np.ix_(y0, x1)]
    Ic = source[np.ix_(y1, x0)]
    Id = source[np.ix_(y1, x1)]

    top = Ia * (1.0 - x_weight) + Ib * x_weight
    bottom = Ic * (1.0 - x_weight) + Id * x_weight
    blended = top * (1.0 - y_weight) + bottom * y_weight
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def _labelled_tile(image: np.ndarray, label: str, tile_size: Tuple[int, int]) -> np.ndarray:
    tile_width, tile_height = tile_size
    resized = resize_bilinear(image, tile_width, tile_height)
    canvas = Image.fromarray(bgr_to_rgb(resized))
    ImageDraw.Draw(canvas).text(LABEL_POSITION, label, fill=LABEL_COLOR)
    return rgb_to_bgr(np.asarray(canvas))


def build_comparison_mosaic(
    panels: Mapping[str, np.ndarray],
    *,
    tile_size: Tuple[int, int] = DEFAULT_TILE_SIZE,
    columns: int = 2,
) -> np.ndarray:
    """Tile labelled BGR images into one comparison image.

    Args:
        panels: Label to BGR image, laid out in insertion order, row by row.
        tile_size: ``(width, height)`` every panel is resized to.
        columns: Number of panels per row; the last row is padded with black.

    Returns:
        BGR ``uint8`` mosaic.
    """
    if not panels:
        raise ValueError("At least one panel is required for a comparison mosaic")
    if columns < 1:
        raise ValueError("columns must be a positive integer")
    tile_width, tile_height = tile_size
    tiles = [_labelled_tile(image, label, tile_size) for label, image in panels.items()]
    blank = np.zeros((tile_height, tile_width, 3), dtype=np.uint8)
    while len(tiles) % columns:
        tiles.append(blank)
    rows = [np.hstack(tiles[start:start + columns]) for start in range(0, len(tiles), columns)]
    return np.vstack(rows)


def run_presets(
    image: np.ndarray,
    presets: Optional[Mapping[str, FilterSettings]] = None,
) -> Dict[str, np.ndarray]:
    """Apply each preset to ``image`` and return the results by preset name."""
    selected = PRESETS if presets is None else presets
    results: Dict[str, np.ndarray] = {}
    for name, settings in selected.items():
        tool = ShadowHighlightFilter.from_settings(settings)
        LOGGER.info("Applying preset '%s'", name)
        LOGGER.debug("%s", tool.settings_report())
        results[name] = tool.apply(image)
    return results


def default_output_path(source: Path, suffix: str = "_sh") -> Path:
    """Return ``<stem><suffix><ext>`` next to ``source``."""
    return source.with_name(source.stem + suffix + source.suffix)


def process_single_image(
    source: Path,
    destination: Path,
    settings: FilterSettings,
    *,
    image: Optional[np.ndarray] = None,
    dry_run: bool = False,
) -> np.ndarray:
    """Load ``source``, correct it and write the result to ``destination``.

    Pass ``image`` when the caller has already decoded ``source``.

    Returns the corrected BGR image so callers can inspect it even when
    ``dry_run`` skips the write.
    """
    LOGGER.info("Processing %s -> %s", source, destination)
    if destination.exists() and not destination.is_file():
        raise ValueError(f"Destination path exists but is not a file: {destination}")

    if image is None:
        image = load_image(source)
    result = ShadowHighlightFilter.from_settings(settings).apply(image)
    if dry_run:
        LOGGER.info("Dry run enabled, skipping save for %s", destination)
        return result
    save_image(destination, result)
    return result


def write_comparison(
    image: np.ndarray,
    output_dir: Path,
    *,
    presets: Optional[Mapping[str, FilterSettings]] = None,
    extension: str = ".png",
    dry_run: bool = False,
) -> Dict[str, Path]:
    """Run every preset, save each result and a labelled mosaic to ``output_dir``.

    Returns a mapping of output name (``result_<preset>`` or ``comparison``)
    to its path.
    """
    results = run_presets(image, presets)
    panels: Dict[str, np.ndarray] = {"original": image}
    panels.update(results)
    mosaic = build_comparison_mosaic(panels)

    outputs = {f"result_{name}": result for name, result in results.items()}
    outputs["comparison"] = mosaic

    written: Dict[str, Path] = {}
    for name, output in outputs.items():
        destination = output_dir / f"{name}{extension}"
        if dry_run:
            LOGGER.info("Dry run: would write %s", destination)
        else:
            save_image(destination, output)
        written[name] = destination
    return written


__all__ = [
    "DEFAULT_SAMPLE_POINTS",
    "PixelSample",
    "brightness",
    "build_comparison_mosaic",
    "default_output_path",
    "describe_image",
    "process_single_image",
    "resize_bilinear",
    "run_presets",
    "sample_pixels",
    "write_comparison",
]
