"""Submodule checkout and build helper tests.

Verifies missing-checkout detection, WSL command wrapping and command failures.
Prevents regressions in how external projects are built before the site.
"""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sitebuild.errors import SubmoduleBuildError, WslUnavailableError
from sitebuild.submodules import (
    build_submodules,
    ensure_submodules,
    missing_submodules,
    to_wsl_path,
    wrap_command_for_wsl,
)


class WslWrappingTests(unittest.TestCase):
    def test_non_windows_commands_are_unchanged(self) -> None:
        self.assertEqual(wrap_command_for_wsl("make", Path("/repo"), platform="linux"), "make")

    def test_windows_paths_are_translated(self) -> None:
        self.assertEqual(to_wsl_path("C:\\Work\\Repo\\external\\epoxy"), "/mnt/c/work/repo/external/epoxy")

    def test_windows_commands_run_through_wsl_bash(self) -> None:
        with mock.patch("sitebuild.submodules.check_wsl", return_value="Ubuntu"):
            wrapped = wrap_command_for_wsl("pnpm run build", Path("D:\\src\\app"), platform="win32")

        self.assertEqual(wrapped, "wsl bash -c \"source ~/.bashrc && cd '/mnt/d/src/app' && pnpm run build\"")

    def test_missing_wsl_raises(self) -> None:
        with mock.patch("sitebuild.submodules.subprocess.run", side_effect=FileNotFoundError("wsl.exe")):
            with self.assertRaises(WslUnavailableError):
                wrap_command_for_wsl("make", Path("C:\\x"), platform="win32")


@unittest.skipIf(sys.platform.startswith("win"), "shell build commands assume POSIX sh")
class BuildSubmodulesTests(unittest.IsolatedAsyncioTestCase):
    async def test_builds_in_order_and_skips_missing_commands(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp).resolve()
            for name in ("alpha", "beta", "gamma"):
                (project / "external" / name).mkdir(parents=True)
            commands = {
                "alpha": "echo $RELEASE > built.txt",
                "beta": "",
                "gamma": "pwd > where.txt",
            }

            with mock.patch("sys.stdout"), self.assertLogs("sitebuild.submodules", level="WARNING"):
                built = await build_submodules(project, commands)

            self.assertEqual(built, ["alpha", "gamma"])
            self.assertEqual((project / "external" / "alpha" / "built.txt").read_text().strip(), "1")
            self.assertEqual(
                Path((project / "external" / "gamma" / "where.txt").read_text().strip()).resolve(),
                project / "external" / "gamma",
            )

    async def test_failed_build_raises_with_name_and_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp).resolve()
            (project / "external" / "alpha").mkdir(parents=True)

            with mock.patch("sys.stdout"):
                with self.assertRaises(SubmoduleBuildError) as ctx:
                    await build_submodules(project, {"alpha": "exit 3"})

            self.assertIn("alpha", str(ctx.exception))
            self.assertIn("3", str(ctx.exception))

    async def test_ensure_skips_update_when_all_present(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp).resolve()
            (project / "external" / "alpha").mkdir(parents=True)

            with mock.patch("sitebuild.submodules.asyncio.create_subprocess_exec") as spawn:
                ran = await ensure_submodules(project, ["alpha"])

            self.assertFalse(ran)
            spawn.assert_not_called()
            self.assertEqual(missing_submodules(project, ["alpha", "beta"]), ["beta"])

    async def test_ensure_raises_when_update_fails(self) -> None:
        class _FailedProcess:
            async def wait(self) -> int:
                return 128

        async def fake_spawn(*_args, **_kwargs):
            return _FailedProcess()

        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("sitebuild.submodules.asyncio.create_subprocess_exec", side_effect=fake_spawn):
                with self.assertRaises(SubmoduleBuildError):
                    await ensure_submodules(Path(tmp), ["alpha"])


if __name__ == "__main__":
    unittest.main()
