"""Top-level build sequence and duration formatting tests.

Verifies phase order, sitemap-only runs and non-blocking repository discovery.
Prevents regressions in how the build driver wires its phases together.
"""

from __future__ import annotations

import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from sitebuild.build import format_duration, run_build, run_sitemap
from sitebuild.config import BuildSettings
from sitebuild.sitemap import HistoryInfo, PipelineState


class StaticHistory:
    async def lookup(self, path: Path) -> HistoryInfo:
        return HistoryInfo(last_modified="2024-01-01T00:00:00.000Z", commit_count=len(path.stem))


class FormatDurationTests(unittest.TestCase):
    def test_seconds_only(self) -> None:
        self.assertEqual(format_duration(0), "0s")
        self.assertEqual(format_duration(5.9), "5s")

    def test_minutes_and_hours(self) -> None:
        self.assertEqual(format_duration(120), "2m 0s")
        self.assertEqual(format_duration(3723), "1h 2m 3s")
        self.assertEqual(format_duration(3600), "1h 0m 0s")


class RunBuildTests(unittest.IsolatedAsyncioTestCase):
    async def test_sitemap_only_build_writes_records(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp).resolve()
            (project / "public" / "docs").mkdir(parents=True)
            (project / "public" / "index.html").write_text("home", encoding="utf-8")
            (project / "public" / "docs" / "index.html").write_text("docs", encoding="utf-8")
            settings = BuildSettings(project_dir=project, skip_submodules=True, skip_assets=True)

            with mock.patch("sitebuild.build.ensure_submodules") as ensure, mock.patch(
                "sitebuild.build.process_input_images"
            ) as images:
                report = await run_build(settings, history=StaticHistory())

            ensure.assert_not_called()
            images.assert_not_called()
            self.assertEqual(report.sitemap.state, PipelineState.DONE)
            parsed = json.loads((project / ".sitemap-base.json").read_text(encoding="utf-8"))
            self.assertEqual(sorted(item["loc"] for item in parsed), ["/", "/docs"])
            self.assertTrue(all(item["lastmod"] == "2024-01-01T00:00:00.000Z" for item in parsed))

    async def test_full_build_runs_phases_in_order(self) -> None:
        calls: list[str] = []

        async def fake_ensure(_project_dir, _names):
            calls.append("ensure")
            return False

        async def fake_build(_project_dir, commands, env_mode=None):
            calls.append("build")
            return list(commands)

        def fake_images(_input_dir, _output_dir):
            from sitebuild.assets import ConversionReport

            calls.append("images")
            return ConversionReport(copied=1, converted=3)

        def fake_vectors(_input_dir, _output_dir):
            from sitebuild.assets import ConversionReport

            calls.append("vectors")
            return ConversionReport(copied=1)

        with tempfile.TemporaryDirectory() as tmp:
            settings = BuildSettings(project_dir=Path(tmp).resolve(), submodules={"alpha": "true"})
            with mock.patch("sitebuild.build.ensure_submodules", side_effect=fake_ensure), mock.patch(
                "sitebuild.build.build_submodules", side_effect=fake_build
            ), mock.patch("sitebuild.build.process_input_images", side_effect=fake_images), mock.patch(
                "sitebuild.build.process_input_vectors", side_effect=fake_vectors
            ):
                report = await run_build(settings, history=StaticHistory())

        self.assertEqual(calls, ["ensure", "build", "images", "vectors"])
        self.assertEqual(report.submodules_built, ["alpha"])
        self.assertEqual(report.assets.copied, 2)
        self.assertEqual(report.assets.converted, 3)
        self.assertEqual(report.sitemap.state, PipelineState.SKIPPED)


class RunSitemapTests(unittest.IsolatedAsyncioTestCase):
    async def test_repository_discovery_runs_off_the_event_loop_thread(self) -> None:
        loop_thread = threading.get_ident()
        discover_threads: list[int] = []

        def fake_discover(_path, timeout_seconds=None):
            discover_threads.append(threading.get_ident())
            return None

        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp).resolve()
            (project / "public").mkdir()
            (project / "public" / "index.html").write_text("home", encoding="utf-8")
            settings = BuildSettings(project_dir=project, skip_submodules=True, skip_assets=True)

            with mock.patch("sitebuild.build.GitHistoryStore.discover", side_effect=fake_discover):
                result = await run_sitemap(settings)

            self.assertEqual(result.state, PipelineState.DONE)
            self.assertEqual(result.max_commits, 0)
        self.assertEqual(len(discover_threads), 1)
        self.assertNotEqual(discover_threads[0], loop_thread)


if __name__ == "__main__":
    unittest.main()
