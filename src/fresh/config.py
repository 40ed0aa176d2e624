"""Settings loading for fresh."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_FILENAME = "fresh.toml"

ENV_SETTINGS = {
    "FRESH_PATH": "root",
    "FRESH_LOCAL": "local_source",
    "FRESH_RCFILE": "rc_file",
    "FRESH_NO_PATH_EXPORT": "no_path_export",
    "FRESH_NO_BIN_CHECK": "no_bin_check",
    "FRESH_NO_LOCAL_CHECK": "no_local_check",
}

_PATH_SETTINGS = ("root", "local_source", "rc_file")


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


class Settings(BaseModel):
    """Values the build pipeline consumes."""

    model_config = ConfigDict(frozen=True)

    home: Path
    root: Path
    local_source: Path
    rc_file: Path
    no_path_export: bool = False
    no_bin_check: bool = False
    no_local_check: bool = False

    @property
    def build_dir(self) -> Path:
        return self.root / "build"

    @property
    def staging_dir(self) -> Path:
        return self.root / "build.new"

    @property
    def backup_dir(self) -> Path:
        return self.root / "build.old"

    @property
    def source_dir(self) -> Path:
        return self.root / "source"

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, base_dir: Path) -> "Settings":
        values: dict[str, Any] = {
            "home": home,
            "root": home / ".fresh",
            "local_source": home / ".dotfiles",
            "rc_file": home / ".freshrc",
        }
        for key, value in raw.items():
            if key in _PATH_SETTINGS:
                values[key] = _expand_path(value, base_dir=base_dir)
            else:
                values[key] = value
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc


def load_settings(path: Path | None = None, *, environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from the environment and an optional TOML file.

    Args:
        path: Optional TOML file (or directory holding ``fresh.toml``) whose
            ``[settings]`` table overrides the environment.
        environ: Environment mapping, ``os.environ`` by default.
    """

    env = os.environ if environ is None else environ
    home = Path(env.get("HOME") or Path.home())

    raw: dict[str, Any] = {}
    for variable, key in ENV_SETTINGS.items():
        value = env.get(variable)
        if not value:
            continue
        raw[key] = value if key in _PATH_SETTINGS else True

    base_dir = Path.cwd()
    if path is not None:
        config_path = _resolve_config_path(path)
        base_dir = config_path.parent
        try:
            with config_path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Configuration file '{config_path}' is not valid TOML: {exc}") from exc
        section = data.get("settings") or {}
        unknown = sorted(set(section) - set(ENV_SETTINGS.values()))
        if unknown:
            raise ConfigError(f"Unknown settings in '{config_path}': {', '.join(unknown)}")
        raw.update(section)

    return Settings.from_raw(raw, home=home, base_dir=base_dir)


def _resolve_config_path(path: Path) -> Path:
    path = Path(path)

    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
