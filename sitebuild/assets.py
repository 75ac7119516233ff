"""Raster and vector asset conversion feeding the static site tree.

Raster inputs are copied verbatim and re-encoded to every raster target
except their own format. Vector inputs are copied; Pillow cannot decode
SVG/PDF, so no raster fallbacks are produced for them.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError, features

from .log import log_section

logger = logging.getLogger(__name__)

RASTER_INPUT_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".webp", ".avif"})
VECTOR_INPUT_EXTENSIONS = frozenset({".svg", ".pdf"})
DEFAULT_QUALITY = 80


@dataclass(frozen=True)
class RasterTarget:
    extension: str
    format: str
    options: dict[str, object] = field(default_factory=dict)
    needs_rgb: bool = False


def raster_targets() -> tuple[RasterTarget, ...]:
    """Return the encoders available in this Pillow build, in output order."""
    targets: list[RasterTarget] = []
    if features.check("avif"):
        targets.append(RasterTarget(".avif", "AVIF", {"quality": DEFAULT_QUALITY}))
    targets.extend(
        [
            RasterTarget(".webp", "WEBP", {"quality": DEFAULT_QUALITY}),
            RasterTarget(".jpg", "JPEG", {"quality": DEFAULT_QUALITY}, needs_rgb=True),
            RasterTarget(".png", "PNG"),
        ]
    )
    return tuple(targets)


@dataclass
class ConversionReport:
    copied: int = 0
    converted: int = 0
    failed: int = 0

    def merge(self, other: ConversionReport) -> ConversionReport:
        return ConversionReport(
            copied=self.copied + other.copied,
            converted=self.converted + other.converted,
            failed=self.failed + other.failed,
        )


def iter_input_files(base_dir: Path, extensions: frozenset[str]) -> Iterator[Path]:
    """Yield files under ``base_dir`` whose lowercase suffix is in ``extensions``."""
    for dirpath, dirnames, filenames in os.walk(base_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1].lower() in extensions:
                yield Path(dirpath) / filename


def _copy_into(input_path: Path, base_dir: Path, out_base: Path) -> Path:
    destination = out_base / input_path.relative_to(base_dir)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(input_path, destination)
    return destination


def _prepare_for(image: Image.Image, target: RasterTarget) -> Image.Image:
    if target.needs_rgb and image.mode not in ("RGB", "L"):
        return image.convert("RGB")
    if image.mode not in ("RGB", "RGBA", "L", "LA"):
        return image.convert("RGBA")
    return image


def convert_raster_file(input_path: Path, base_dir: Path, out_base: Path) -> ConversionReport:
    """Copy ``input_path`` into ``out_base`` and encode every other raster target."""
    report = ConversionReport()
    extension = input_path.suffix.lower()
    relative = input_path.relative_to(base_dir)

    copied = _copy_into(input_path, base_dir, out_base)
    report.copied += 1
    logger.info("Copied original: %s", copied.relative_to(out_base).as_posix())

    with Image.open(input_path) as source:
        source.load()
        for target in raster_targets():
            if target.extension == extension:
                continue
            out_path = (out_base / relative).with_suffix(target.extension)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            _prepare_for(source, target).save(out_path, format=target.format, **target.options)
            report.converted += 1
            logger.info("%s → %s", relative.as_posix(), out_path.relative_to(out_base).as_posix())
    return report


def copy_vector_file(input_path: Path, base_dir: Path, out_base: Path) -> ConversionReport:
    copied = _copy_into(input_path, base_dir, out_base)
    logger.info("Copied vector: %s", copied.relative_to(out_base).as_posix())
    logger.debug("No raster fallback for %s: vector decoding is unsupported", input_path.name)
    return ConversionReport(copied=1)


def _process_tree(
    title: str,
    base_dir: Path,
    out_base: Path,
    extensions: frozenset[str],
    handler: Callable[[Path, Path, Path], ConversionReport],
) -> ConversionReport:
    log_section(title)
    if not base_dir.is_dir():
        logger.warning("%s directory not found; skipping.", base_dir.name)
        return ConversionReport()

    report = ConversionReport()
    for input_path in iter_input_files(base_dir, extensions):
        try:
            report = report.merge(handler(input_path, base_dir, out_base))
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            logger.warning("Failed to convert %s: %s", input_path, exc)
            report.failed += 1
    return report


def process_input_images(input_dir: Path, output_dir: Path) -> ConversionReport:
    return _process_tree(
        f"Processing raster images ({input_dir.name} → {output_dir})",
        input_dir,
        output_dir,
        RASTER_INPUT_EXTENSIONS,
        convert_raster_file,
    )


def process_input_vectors(input_dir: Path, output_dir: Path) -> ConversionReport:
    return _process_tree(
        f"Processing vectors ({input_dir.name} → {output_dir})",
        input_dir,
        output_dir,
        VECTOR_INPUT_EXTENSIONS,
        copy_vector_file,
    )


__all__ = [
    "RASTER_INPUT_EXTENSIONS",
    "VECTOR_INPUT_EXTENSIONS",
    "RasterTarget",
    "raster_targets",
    "ConversionReport",
    "iter_input_files",
    "convert_raster_file",
    "copy_vector_file",
    "process_input_images",
    "process_input_vectors",
]
