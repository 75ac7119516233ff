"""Raster and vector asset conversion tests.

Verifies originals are copied and raster targets encoded beside them.
Prevents regressions where one corrupt image aborts the asset phase.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from PIL import Image

from sitebuild.assets import (
    convert_raster_file,
    process_input_images,
    process_input_vectors,
    raster_targets,
)


def _save_image(path: Path, mode: str = "RGBA", fmt: str = "PNG") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    color = (200, 30, 30, 128) if mode == "RGBA" else 7 if mode == "P" else (10, 20, 30)
    Image.new(mode, (8, 6), color).save(path, format=fmt)
    return path


class ConvertRasterTests(unittest.TestCase):
    def test_copies_original_and_encodes_other_targets(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp) / "inputimages"
            out = Path(tmp) / "optimg"
            source = _save_image(base / "icons" / "logo.png")

            report = convert_raster_file(source, base, out)

            expected = {target.extension for target in raster_targets()} - {".png"}
            produced = {path.suffix for path in (out / "icons").iterdir()}
            self.assertEqual(produced, expected | {".png"})
            self.assertEqual(report.copied, 1)
            self.assertEqual(report.converted, len(expected))
            self.assertEqual((out / "icons" / "logo.png").read_bytes(), source.read_bytes())
            with Image.open(out / "icons" / "logo.jpg") as jpeg:
                self.assertEqual(jpeg.mode, "RGB")
                self.assertEqual(jpeg.size, (8, 6))

    def test_palette_gif_converts(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp) / "in"
            out = Path(tmp) / "out"
            source = _save_image(base / "anim.gif", mode="P", fmt="GIF")

            convert_raster_file(source, base, out)

            self.assertTrue((out / "anim.webp").exists())
            self.assertTrue((out / "anim.jpg").exists())
            self.assertTrue((out / "anim.gif").exists())


class ProcessTreeTests(unittest.TestCase):
    def test_missing_input_dir_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("sitebuild.assets", level="WARNING"):
                report = process_input_images(Path(tmp) / "inputimages", Path(tmp) / "optimg")

            self.assertEqual((report.copied, report.converted, report.failed), (0, 0, 0))

    def test_corrupt_image_is_reported_and_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp) / "inputimages"
            out = Path(tmp) / "optimg"
            _save_image(base / "good.png")
            (base / "bad.jpg").write_bytes(b"not an image")
            (base / "notes.txt").write_text("ignored", encoding="utf-8")

            with self.assertLogs("sitebuild.assets", level="WARNING"):
                report = process_input_images(base, out)

            self.assertEqual(report.failed, 1)
            self.assertEqual(report.copied, 1)
            self.assertTrue((out / "good.webp").exists())
            self.assertFalse((out / "notes.txt").exists())

    def test_vectors_are_copied(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp) / "inputvectors"
            out = Path(tmp) / "outvect"
            (base / "shapes").mkdir(parents=True)
            svg = base / "shapes" / "star.svg"
            svg.write_text("<svg xmlns='http://www.w3.org/2000/svg'/>", encoding="utf-8")

            report = process_input_vectors(base, out)

            self.assertEqual(report.copied, 1)
            self.assertEqual((out / "shapes" / "star.svg").read_text(encoding="utf-8"), svg.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
