"""Settings for the patch action, loaded from YAML and the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_PROGRAM = "patch"
DEFAULT_CONFIG_NAME = "patchtx.yaml"
CONFIG_SECTION = "patch"

_ENV_OVERRIDES = {
    "PATCHTX_PROGRAM": "program",
    "PATCHTX_TEMP_PREFIX": "temp_prefix",
}


class SettingsError(RuntimeError):
    """Raised when configuration cannot be read or does not validate."""


class PatchSettings(BaseModel):
    """Tunables injected into the state checker and fixer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    program: str = Field(default=DEFAULT_PROGRAM, min_length=1)
    temp_prefix: str = Field(default=".patchtx-", min_length=1)
    preserve_mode: bool = True


def _read_config_section(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as error:
        raise SettingsError(f"Failed to parse config {config_path}: {error}") from error
    except OSError as error:
        raise SettingsError(f"Failed to read config {config_path}: {error}") from error

    if not isinstance(loaded, Mapping):
        raise SettingsError(f"Configuration must be a mapping at the top level: {config_path}")
    section = loaded.get(CONFIG_SECTION) or {}
    if not isinstance(section, Mapping):
        raise SettingsError(f"Section '{CONFIG_SECTION}' must be a mapping: {config_path}")
    return dict(section)


def load_settings(
    config_path: Path | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> PatchSettings:
    """Build ``PatchSettings`` from ``config_path`` (if any) plus env overrides."""
    env_mapping = os.environ if env is None else env
    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(_read_config_section(Path(config_path)))

    for variable, key in _ENV_OVERRIDES.items():
        raw = env_mapping.get(variable)
        if raw is not None and raw.strip():
            values[key] = raw.strip()

    try:
        return PatchSettings(**values)
    except ValidationError as error:
        raise SettingsError(f"Invalid patch settings: {error}") from error


__all__ = [
    "CONFIG_SECTION",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_PROGRAM",
    "PatchSettings",
    "SettingsError",
    "load_settings",
]
