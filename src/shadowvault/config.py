"""TOML configuration loading for shadowvault."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "SHADOWVAULT_CONFIG"
DEFAULT_VAULT_ROOT = "~/.gemini-vault"
DEFAULT_SHARED_CONFIG = "laravel_nova_stack.json"
DEFAULT_ROOT_MARKERS = (".git",)
DEFAULT_MANIFEST_FILES = (
    "composer.json",
    "package.json",
    "pyproject.toml",
    "Cargo.toml",
    "go.mod",
    "Gemfile",
)


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def default_config_path() -> Path:
    """Return the configuration path used when none is given explicitly."""

    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(xdg_home).expanduser() if xdg_home else Path.home() / ".config"
    return config_home / "shadowvault" / DEFAULT_CONFIG_FILENAME


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True)

    vault_root: Path = Field(default_factory=lambda: Path(DEFAULT_VAULT_ROOT).expanduser())
    shared_config_filename: str = DEFAULT_SHARED_CONFIG
    root_markers: tuple[str, ...] = DEFAULT_ROOT_MARKERS
    manifest_files: tuple[str, ...] = DEFAULT_MANIFEST_FILES
    config_path: Path | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, base_dir: Path, config_path: Path | None = None) -> "Settings":
        vault_root = _expand_path(raw.get("vault_root", DEFAULT_VAULT_ROOT), base_dir=base_dir)
        shared = str(raw.get("shared_config_filename", DEFAULT_SHARED_CONFIG))
        if not shared or "/" in shared:
            raise ConfigError(f"'shared_config_filename' must be a plain file name, got '{shared}'")

        try:
            return cls(
                vault_root=vault_root,
                shared_config_filename=shared,
                root_markers=_name_list(raw, "root_markers", DEFAULT_ROOT_MARKERS),
                manifest_files=_name_list(raw, "manifest_files", DEFAULT_MANIFEST_FILES),
                config_path=config_path,
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc


def _name_list(raw: Mapping[str, Any], key: str, default: tuple[str, ...]) -> Any:
    value = raw.get(key, default)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list of file names, got {type(value).__name__}")
    return value


def load_config(path: Path | None = None) -> Settings:
    """Load and validate a configuration file.

    Args:
        path: Optional path to the TOML file or to a directory holding
            ``config.toml``. When omitted, ``$SHADOWVAULT_CONFIG`` or
            ``~/.config/shadowvault/config.toml`` is read if it exists, and
            built-in defaults are used otherwise.
    """

    if path is None:
        candidate = default_config_path()
        if not candidate.exists():
            return Settings.from_raw({}, base_dir=Path.home())
        config_path = candidate.resolve(strict=False)
    else:
        config_path = _resolve_config_path(path)

    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Configuration file '{config_path}' is not valid TOML: {exc}") from exc

    section = data.get("settings", data)
    if not isinstance(section, Mapping):
        raise ConfigError("The [settings] section must be a table")

    return Settings.from_raw(section, base_dir=config_path.parent, config_path=config_path)


def render_config(settings: Settings | None = None) -> str:
    """Return a starter configuration file for ``settings``."""

    settings = settings or Settings()
    home = Path.home()
    vault_root = settings.vault_root
    try:
        vault_text = "~/" + vault_root.relative_to(home).as_posix()
    except ValueError:
        vault_text = vault_root.as_posix()

    data = {
        "settings": {
            "vault_root": vault_text,
            "shared_config_filename": settings.shared_config_filename,
            "root_markers": list(settings.root_markers),
            "manifest_files": list(settings.manifest_files),
        }
    }
    return "# shadowvault configuration\n\n" + tomli_w.dumps(data)


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
