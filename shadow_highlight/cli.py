"""Command-line interface wiring for the shadow/highlight filter."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Tuple

import yaml

from .errors import ImageLoadError
from .filter import PRESETS, FilterSettings, ShadowHighlightFilter
from .io_utils import load_image
from .pipeline import (
    DEFAULT_SAMPLE_POINTS,
    default_output_path,
    describe_image,
    process_single_image,
    sample_pixels,
    write_comparison,
)

LOGGER = logging.getLogger("shadow_highlight")

SETTING_OPTIONS = ("shadow_amount", "highlight_amount", "tonal_width", "blur_radius")


def _load_config_data(path: Path) -> Mapping[str, Any]:
    """Load configuration from JSON or YAML file.

    Args:
        path: Path to configuration file (.json, .yaml, or .yml).

    Returns:
        Dictionary mapping configuration keys to values.

    Raises:
        FileNotFoundError: If configuration file doesn't exist.
        ValueError: If file content is not a valid mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(path.read_text())
        else:
            data = json.loads(path.read_text())
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Unable to parse configuration file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping of option names to values")
    return data


def _normalise_config_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Convert configuration keys to CLI-compatible underscore format.

    Raises:
        ValueError: If any key is not a string.
    """
    normalised: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ValueError("Configuration keys must be strings")
        normalised[key.replace("-", "_")] = value
    return normalised


def _build_parser_aliases(parser: argparse.ArgumentParser) -> tuple[dict[str, argparse.Action], dict[str, str]]:
    """Build lookup tables mapping argument names to parser actions.

    Returns:
        Tuple of (dest_to_action, alias_to_dest) dictionaries for resolving
        configuration file keys to parser actions.
    """
    dest_to_action: dict[str, argparse.Action] = {}
    alias_to_dest: dict[str, str] = {}
    for action in parser._actions:  # pylint: disable=protected-access
        if action.dest in {argparse.SUPPRESS, "help", "config"}:
            continue
        dest_to_action[action.dest] = action
        alias_to_dest[action.dest.replace("-", "_")] = action.dest
        for option_string in action.option_strings:
            alias = option_string.lstrip("-").replace("-", "_")
            alias_to_dest[alias] = action.dest
    return dest_to_action, alias_to_dest


def _coerce_bool(value: Any, *, source: Path, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise ValueError(
        f"Invalid boolean for '{key}' in {source}: expected true/false value, got {value!r}"
    )


def _coerce_config_value(action: argparse.Action, value: Any, *, source: Path, key: str) -> Any:
    """Convert configuration values so they match argparse expectations."""

    if value is None:
        return None

    if isinstance(action, (argparse._StoreTrueAction, argparse._StoreFalseAction)):  # pylint: disable=protected-access
        return _coerce_bool(value, source=source, key=key)

    if isinstance(action, argparse._AppendAction):  # pylint: disable=protected-access
        items = value if isinstance(value, list) else [value]
        return [_coerce_scalar(action, item, source=source, key=key) for item in items]

    return _coerce_scalar(action, value, source=source, key=key)


def _coerce_scalar(action: argparse.Action, value: Any, *, source: Path, key: str) -> Any:
    if action.type is not None:
        try:
            converted = action.type(value)
        except (TypeError, ValueError, argparse.ArgumentTypeError) as exc:
            raise ValueError(f"Invalid value for '{key}' in {source}: {exc}") from exc
    else:
        converted = value

    if action.choices is not None and converted not in action.choices:
        raise ValueError(
            f"Invalid value for '{key}' in {source}: {converted!r} (choose from {sorted(action.choices)})"
        )
    return converted


def parse_point(text: str) -> Tuple[int, int]:
    """Parse ``"X,Y"`` into an integer point."""
    parts = [part.strip() for part in str(text).split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected X,Y but got {text!r}")
    try:
        x, y = (int(part) for part in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected integer X,Y but got {text!r}") from exc
    return x, y


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Lighten shadows and recover highlights of an image in Lab space.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional configuration file (JSON, or YAML for .yaml/.yml)",
    )
    parser.add_argument("input", type=Path, help="Image to correct")
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help="Where to write the corrected image. Defaults to '<stem><suffix><ext>' next to the input.",
    )
    parser.add_argument(
        "--preset",
        default="default",
        choices=sorted(PRESETS.keys()),
        help="Settings preset that provides a starting point",
    )
    parser.add_argument(
        "--shadows",
        type=float,
        default=None,
        dest="shadow_amount",
        help="Shadow lightening strength (0-1)",
    )
    parser.add_argument(
        "--highlights",
        type=float,
        default=None,
        dest="highlight_amount",
        help="Highlight darkening strength (0-1)",
    )
    parser.add_argument("--tonal-width", type=float, default=None, dest="tonal_width", help="Tonal width (0-1)")
    parser.add_argument(
        "--blur-radius",
        type=float,
        default=None,
        dest="blur_radius",
        help="Blur radius for the tonal masks in pixels (0-50)",
    )
    parser.add_argument("--suffix", default="_sh", help="Suffix for the default output filename")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Allow overwriting an existing output file",
    )
    parser.add_argument(
        "--compare",
        type=Path,
        default=None,
        metavar="DIR",
        help="Also run every preset and write each result plus comparison.png into DIR",
    )
    parser.add_argument(
        "--sample",
        type=parse_point,
        action="append",
        default=None,
        metavar="X,Y",
        help="Pixel to report before/after values for (repeatable)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Preview the work without writing any files")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )

    argv_list = list(argv) if argv is not None else None

    config_probe, _ = parser.parse_known_args(argv_list)
    if config_probe.config is not None:
        try:
            raw_config = _load_config_data(config_probe.config)
            normalised_config = _normalise_config_keys(raw_config)
            dest_to_action, alias_to_dest = _build_parser_aliases(parser)

            converted_defaults: dict[str, Any] = {}
            for key, value in normalised_config.items():
                dest = alias_to_dest.get(key)
                if dest is None:
                    raise ValueError(
                        f"Unknown configuration option '{key}' in {config_probe.config}"
                    )
                action = dest_to_action[dest]
                converted_defaults[dest] = _coerce_config_value(
                    action, value, source=config_probe.config, key=key
                )

            parser.set_defaults(**converted_defaults)
        except (OSError, ValueError) as exc:
            parser.error(str(exc))

    args = parser.parse_args(argv_list)
    if args.output is None:
        args.output = default_output_path(args.input, args.suffix)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")
    return args


def build_settings(args: argparse.Namespace) -> FilterSettings:
    """Construct filter settings from the preset and CLI overrides.

    Overrides are clamped exactly like the filter's own setters.
    """
    base = dataclasses.replace(PRESETS[args.preset])
    overrides = {
        name: getattr(args, name)
        for name in SETTING_OPTIONS
        if getattr(args, name, None) is not None
    }
    settings = dataclasses.replace(base, **overrides)
    LOGGER.debug("Using settings: %s", settings)
    return settings


def run(args: argparse.Namespace) -> int:
    """Correct the input image as described by ``args``; return an exit status."""

    settings = build_settings(args)
    source: Path = args.input
    destination: Path = args.output

    if source.resolve() == destination.resolve():
        LOGGER.error("Output must differ from the input file: %s", source)
        return 1

    skip_output = destination.exists() and not args.overwrite and not args.dry_run

    tool = ShadowHighlightFilter.from_settings(settings)
    LOGGER.info("%s", tool.settings_report())
    try:
        original = load_image(source)
        LOGGER.debug("Input image:\n%s", describe_image(original))
        if skip_output:
            LOGGER.warning("Skipping %s (exists, use --overwrite to replace)", destination)
            result = tool.apply(original)
        else:
            result = process_single_image(
                source, destination, settings, image=original, dry_run=args.dry_run
            )
        points = args.sample or DEFAULT_SAMPLE_POINTS
        for sample in sample_pixels(original, result, points):
            LOGGER.info(
                "Pixel (%s, %s): B=%s G=%s R=%s -> B=%s G=%s R=%s, brightness %.1f -> %.1f (change %+.1f)",
                sample.x,
                sample.y,
                *sample.original,
                *sample.result,
                sample.original_brightness,
                sample.result_brightness,
                sample.brightness_change,
            )
        if args.compare is not None:
            written = write_comparison(original, args.compare, dry_run=args.dry_run)
            LOGGER.info("Wrote %s comparison file(s) to %s", len(written), args.compare)
    except (OSError, ValueError, ImageLoadError) as exc:
        LOGGER.error("%s", exc)
        return 1

    LOGGER.info("Finished %s", destination)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    return run(args)


__all__ = [
    "build_settings",
    "main",
    "parse_args",
    "parse_point",
    "run",
]
