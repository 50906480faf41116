"""Settings for repokeeper.

Values are resolved in this order: explicit arguments, environment
variables, the YAML config file, then the defaults below.

Example config file (``~/.config/repokeeper/config.yaml``)::

    api_url: https://github.example.com/api/v3
    timeout: 20
    license:
      key: gpl-3.0
      message: Add GNU GPL v3 license
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from repokeeper.exceptions import ConfigError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "repokeeper" / "config.yaml"

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass
class Settings:
    """Resolved runtime settings."""

    token: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    license_key: str = "gpl-3.0"
    license_message: str = "Add GNU GPL v3 license"
    config_path: Path | None = field(default=None, compare=False)

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(
                "No GitHub token found. Set GITHUB_TOKEN (or GH_TOKEN), "
                "or add 'token:' to the config file."
            )
        return self.token


def _read_config_file(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    values: dict = {}
    for key in ("token", "api_url", "timeout"):
        if key in data:
            values[key] = data[key]

    license_data = data.get("license") or {}
    if not isinstance(license_data, dict):
        raise ConfigError(f"{path}: 'license' must be a mapping")
    if "key" in license_data:
        values["license_key"] = license_data["key"]
    if "message" in license_data:
        values["license_message"] = license_data["message"]

    known = {"token", "api_url", "timeout", "license"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{path}: unknown setting(s): {', '.join(unknown)}")
    return values


def _read_env() -> dict:
    values: dict = {}
    for var in TOKEN_ENV_VARS:
        if token := os.getenv(var):
            values["token"] = token
            break
    if api_url := os.getenv("REPOKEEPER_API_URL"):
        values["api_url"] = api_url
    if timeout := os.getenv("REPOKEEPER_TIMEOUT"):
        values["timeout"] = timeout
    return values


def load_settings(config_path: str | Path | None = None, **overrides) -> Settings:
    """Build :class:`Settings` from the config file, environment and overrides.

    A missing default config file is fine; a missing file that was asked for
    explicitly is a :class:`ConfigError`.
    """
    values: dict = {}

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        values.update(_read_config_file(path))
    elif config_path:
        raise ConfigError(f"Config file not found: {config_path}")

    values.update(_read_env())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        timeout = float(values.get("timeout", Settings.timeout))
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {values['timeout']!r}") from None
    if timeout <= 0:
        raise ConfigError("timeout must be positive")
    values["timeout"] = timeout
    values["api_url"] = str(values.get("api_url", DEFAULT_API_URL)).rstrip("/")

    return Settings(config_path=path if path.exists() else None, **values)
