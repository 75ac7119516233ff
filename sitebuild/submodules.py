"""Checkout and build of external git submodules before asset processing."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import subprocess
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TextIO

from .errors import SubmoduleBuildError, WslUnavailableError
from .log import log_section

logger = logging.getLogger(__name__)

EXTERNAL_DIRNAME = "external"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
RESET = "\x1b[0m"

_DRIVE_RE = re.compile(r"^([A-Za-z]):")


def submodule_dir(project_dir: Path, name: str) -> Path:
    return Path(project_dir) / EXTERNAL_DIRNAME / name


def missing_submodules(project_dir: Path, names: Sequence[str]) -> list[str]:
    return [name for name in names if not submodule_dir(project_dir, name).exists()]


async def ensure_submodules(project_dir: Path, names: Sequence[str]) -> bool:
    """Initialize submodules when any checkout is missing.

    Returns whether ``git submodule update`` ran.
    """
    log_section("Checking git submodules")
    if not missing_submodules(project_dir, names):
        logger.info("All submodules exist, continuing...")
        return False

    logger.info("Not all submodules found, installing...")
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            "submodule",
            "update",
            "--init",
            "--recursive",
            cwd=str(project_dir),
        )
    except OSError as exc:
        raise SubmoduleBuildError(f"git submodule update could not start: {exc}") from exc
    returncode = await proc.wait()
    if returncode != 0:
        raise SubmoduleBuildError(f"git submodule update failed with code {returncode}")
    return True


def check_wsl() -> str:
    """Return the installed WSL distro listing or raise ``WslUnavailableError``."""
    try:
        output = subprocess.run(
            ["wsl.exe", "--list", "--quiet"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=True,
        ).stdout
    except (OSError, subprocess.CalledProcessError) as exc:
        raise WslUnavailableError(f"WSL is not installed or inaccessible. Details: {exc}") from exc
    distros = output.replace("\0", "").strip()
    if not distros:
        raise WslUnavailableError("WSL is installed but no distros found.")
    logger.info("WSL distros detected: %s", distros)
    return distros


def to_wsl_path(path: str) -> str:
    """Convert ``C:\\work\\repo`` to ``/mnt/c/work/repo``."""
    return _DRIVE_RE.sub(r"/mnt/\1", path.replace("\\", "/")).lower()


def wrap_command_for_wsl(command: str, cwd: Path, platform: str | None = None) -> str:
    """Run ``command`` through WSL bash on Windows; unchanged elsewhere."""
    platform = sys.platform if platform is None else platform
    if not platform.startswith("win"):
        return command
    check_wsl()
    wsl_cwd = to_wsl_path(str(cwd))
    return f"wsl bash -c \"source ~/.bashrc && cd '{wsl_cwd}' && {command}\""


async def _relay(stream: asyncio.StreamReader | None, out: TextIO, color: str) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.readline()
        if not chunk:
            return
        out.write(f"{color}{chunk.decode('utf-8', errors='replace')}{RESET}")
        out.flush()


async def run_build_command(name: str, command: str, cwd: Path, env_mode: str | None = None) -> None:
    """Run one submodule build with ``RELEASE=1`` and relay its output."""
    env = {**os.environ, "RELEASE": "1"}
    proc = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd),
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    relays = [_relay(proc.stdout, sys.stdout, GREEN)]
    if env_mode == "debug":
        relays.append(_relay(proc.stderr, sys.stderr, YELLOW))
    else:
        relays.append(_discard(proc.stderr))
    await asyncio.gather(*relays)
    returncode = await proc.wait()
    if returncode != 0:
        raise SubmoduleBuildError(f"Build failed for {name} with exit code {returncode}")


async def _discard(stream: asyncio.StreamReader | None) -> None:
    if stream is None:
        return
    while await stream.read(65536):
        pass


async def build_submodules(
    project_dir: Path,
    commands: Mapping[str, str],
    env_mode: str | None = None,
    platform: str | None = None,
) -> list[str]:
    """Build every submodule in order; return the names that were built."""
    built: list[str] = []
    for name, command in commands.items():
        log_section(f"Building {name}")
        if not command:
            logger.warning("No build command found for %s; skipping.", name)
            continue
        cwd = submodule_dir(project_dir, name)
        wrapped = wrap_command_for_wsl(command, cwd, platform=platform)
        await run_build_command(name, wrapped, cwd, env_mode=env_mode)
        built.append(name)
    return built


__all__ = [
    "EXTERNAL_DIRNAME",
    "submodule_dir",
    "missing_submodules",
    "ensure_submodules",
    "check_wsl",
    "to_wsl_path",
    "wrap_command_for_wsl",
    "run_build_command",
    "build_submodules",
]
