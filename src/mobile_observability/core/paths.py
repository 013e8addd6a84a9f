"""Utilities for locating runtime data and the bundled plugin corpus."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

_ENV_VAR = "MOBILE_OBSERVABILITY_DATA_DIR"
_DEFAULT_DIRNAME = ".mobile_observability"
_SYSTEM_DIR = Path(__file__).resolve().parents[1] / "system"


def get_data_dir() -> Path:
    """Return the configured runtime data directory.

    Honors the MOBILE_OBSERVABILITY_DATA_DIR environment variable (relative
    values resolve against the working directory, blank values are ignored);
    otherwise defaults to ~/.mobile_observability.
    """
    override = (os.getenv(_ENV_VAR) or "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return (Path.home() / _DEFAULT_DIRNAME).resolve()


def ensure_data_dir() -> Path:
    """Create the data directory, seed its config folder and return it."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    _seed_from_system(data_dir)
    return data_dir


def resolve_data_path(*relative: str, ensure_parent: bool = False) -> Path:
    """Join *relative* onto the runtime data directory."""
    full_path = ensure_data_dir().joinpath(*relative)
    if ensure_parent:
        full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path


def resolve_data_file(path: str, ensure_parent: bool = False) -> Path:
    """Resolve a configured file path such as ``index.path``.

    Absolute paths are used as-is; relative ones live under the data dir.
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        if ensure_parent:
            candidate.parent.mkdir(parents=True, exist_ok=True)
        return candidate
    return resolve_data_path(*candidate.parts, ensure_parent=ensure_parent)


def get_system_dir() -> Path:
    """Return the package's bundled system directory."""
    return _SYSTEM_DIR


def get_system_path(*relative: str) -> Path:
    return get_system_dir().joinpath(*relative)


def get_bundled_plugin_dir() -> Path:
    """Return the root of the plugin corpus shipped with the package."""
    return get_system_path("plugin")


def _seed_from_system(target: Path) -> None:
    """Copy the packaged config folder into *target* unless it already has one."""
    src = get_system_path("config")
    dest = target / "config"
    if target.resolve() == _SYSTEM_DIR.resolve() or not src.exists() or dest.exists():
        return
    try:
        shutil.copytree(src, dest)
    except FileExistsError:
        return


__all__ = [
    "get_data_dir",
    "ensure_data_dir",
    "resolve_data_path",
    "resolve_data_file",
    "get_system_dir",
    "get_system_path",
    "get_bundled_plugin_dir",
]
