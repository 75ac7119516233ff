"""Build settings assembled from defaults, JSON config, env and CLI.

A project-local ``sitebuild.json`` wins over the per-user config file.
All config access is defensive: malformed or missing config falls back to
the next lower layer instead of failing the build.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from platformdirs import user_config_dir

from .sitemap.history import DEFAULT_LOOKUP_TIMEOUT_SECONDS
from .sitemap.pipeline import DEFAULT_BATCH_SIZE, DEFAULT_CONCURRENCY

APP_NAME = "sitebuild"
CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_FILENAME = "sitebuild.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_SUBMODULE_COMMANDS: dict[str, str] = {
    "scramjet": "CI=true pnpm install && PATH='$HOME/.cargo/bin:$PATH' npm run rewriter:build && npm run build:all",
    "ultraviolet": "CI=true pnpm install && pnpm run build",
    "bare-mux": "CI=true pnpm install && pnpm run build",
    "libcurl-transport": "CI=true pnpm install && pnpm run build",
    "epoxy": "CI=true pnpm install && pnpm run build",
    "wisp-client-js": "CI=true npm install && npm run build",
    "bare-server-node": "CI=true pnpm install && pnpm run build",
    "wisp-server-node": "CI=true pnpm install && pnpm run build",
}


@dataclass(frozen=True)
class BuildSettings:
    """Resolved settings for one build run; relative paths hang off ``project_dir``."""

    project_dir: Path
    site_dir: str = "public"
    output_path: str = ".sitemap-base.json"
    batch_size: int = DEFAULT_BATCH_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    lookup_timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS
    input_images: str = "inputimages"
    output_images: str = "public/optimg"
    input_vectors: str = "inputvectors"
    output_vectors: str = "public/outvect"
    submodules: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SUBMODULE_COMMANDS))
    skip_submodules: bool = False
    skip_assets: bool = False
    env: str | None = None
    verbose: bool = False

    def resolve(self, relative: str) -> Path:
        """Resolve a configured path against ``project_dir``."""
        path = Path(relative)
        return path if path.is_absolute() else self.project_dir / path

    @property
    def site_root(self) -> Path:
        return self.resolve(self.site_dir)

    @property
    def sitemap_output(self) -> Path:
        return self.resolve(self.output_path)


def _load_config_path(project_dir: Path | None) -> Path:
    """Return the project config when present, else the per-user config path."""
    if project_dir is not None:
        project_config = Path(project_dir) / PROJECT_CONFIG_FILENAME
        if project_config.exists():
            return project_config
    return CONFIG_PATH


def load_config(project_dir: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = _load_config_path(project_dir)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_positive_int(value: object) -> int | None:
    """Accept positive integers and integer strings; booleans are rejected."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _coerce_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _coerce_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _coerce_submodules(value: object) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    commands: dict[str, str] = {}
    for name, command in value.items():
        if not isinstance(name, str) or not name.strip():
            continue
        # An empty/null command keeps the submodule listed but unbuilt.
        commands[name.strip()] = command.strip() if isinstance(command, str) else ""
    return commands


_STRING_KEYS = ("site_dir", "output_path", "input_images", "output_images", "input_vectors", "output_vectors", "env")
_INT_KEYS = ("batch_size", "concurrency")
_BOOL_KEYS = ("skip_submodules", "skip_assets", "verbose")


def _apply_layer(settings: BuildSettings, layer: Mapping[str, object]) -> BuildSettings:
    """Return ``settings`` updated with every valid value in ``layer``."""
    changes: dict[str, object] = {}
    for key in _STRING_KEYS:
        value = _coerce_str(layer.get(key))
        if value is not None:
            changes[key] = value
    for key in _INT_KEYS:
        value = _coerce_positive_int(layer.get(key))
        if value is not None:
            changes[key] = value
    for key in _BOOL_KEYS:
        value = layer.get(key)
        if isinstance(value, bool):
            changes[key] = value
    timeout = _coerce_float(layer.get("lookup_timeout_seconds"))
    if timeout is not None:
        changes["lookup_timeout_seconds"] = timeout
    submodules = _coerce_submodules(layer.get("submodules"))
    if submodules is not None:
        changes["submodules"] = submodules
    return replace(settings, **changes) if changes else settings


def environment_layer(environ: Mapping[str, str] | None = None) -> dict[str, object]:
    """Translate recognized environment variables into a settings layer."""
    if environ is None:
        environ = os.environ
    layer: dict[str, object] = {}
    if environ.get("SKIP_SUBMODULES") == "1":
        layer["skip_submodules"] = True
    if "SITEBUILD_BATCH_SIZE" in environ:
        layer["batch_size"] = environ["SITEBUILD_BATCH_SIZE"]
    if "SITEBUILD_CONCURRENCY" in environ:
        layer["concurrency"] = environ["SITEBUILD_CONCURRENCY"]
    if "SITEBUILD_LOOKUP_TIMEOUT" in environ:
        layer["lookup_timeout_seconds"] = environ["SITEBUILD_LOOKUP_TIMEOUT"]
    return layer


def load_settings(
    project_dir: Path,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildSettings:
    """Merge defaults < config file < environment < ``overrides``."""
    project_dir = Path(project_dir).resolve()
    settings = BuildSettings(project_dir=project_dir)
    settings = _apply_layer(settings, load_config(project_dir))
    settings = _apply_layer(settings, environment_layer(environ))
    if overrides:
        settings = _apply_layer(settings, overrides)
    return settings


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "PROJECT_CONFIG_FILENAME",
    "DEFAULT_SUBMODULE_COMMANDS",
    "BuildSettings",
    "load_config",
    "environment_layer",
    "load_settings",
]
