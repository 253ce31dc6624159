"""User settings: cloud API location and credentials."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from fwflash.core.errors import ConfigError

DEFAULT_API_URL = "https://api.particle.io"


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    access_token: str | None = None


def settings_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "fwflash/settings.yaml"


def load_settings(path: Path | None = None) -> Settings:
    """Read settings.yaml (if present), then apply FWFLASH_* environment overrides."""
    path = path or settings_path()
    doc: dict = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Could not read settings file {path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping at root")
        doc = loaded

    api_url = os.environ.get("FWFLASH_API_URL") or doc.get("api_url") or DEFAULT_API_URL
    access_token = os.environ.get("FWFLASH_ACCESS_TOKEN") or doc.get("access_token")
    return Settings(api_url=str(api_url).rstrip("/"), access_token=access_token)
