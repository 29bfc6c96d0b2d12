"""Configuration loading and management."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pressprobe.exceptions import ConfigError

DEFAULT_CONFIG_PATHS = [
    Path("configs/default.yaml"),
    Path("pressprobe.yaml"),
    Path.home() / ".pressprobe" / "config.yaml",
]


class EngineSettings(BaseModel):
    """Validated settings for one fingerprint run."""

    model_config = ConfigDict(extra="forbid")

    budget_ms: float = Field(default=8000.0, gt=0)
    per_probe_timeout_ms: float = Field(default=2500.0, gt=0)
    concurrency: int = Field(default=6, ge=1, le=64)
    asset_cap: int = Field(default=8, ge=0, le=64)
    slug_cap: int = Field(default=10, ge=0, le=100)
    probe_files: bool = True
    request_timeout: float = Field(default=5.0, gt=0)
    range_window: int = Field(default=4096, ge=256)
    user_agent: str | None = None
    verify_tls: bool = True
    check_outdated: bool = True
    extra_plugins: dict[str, str] = Field(default_factory=dict)
    extra_aliases: dict[str, str] = Field(default_factory=dict)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from file, merged over the defaults.

    Args:
        config_path: Optional path to config file. If not provided,
                    searches default locations.

    Returns:
        Configuration dictionary.

    Raises:
        ConfigError: If an explicit path is missing or a file is not valid YAML.
    """
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}", {"path": str(config_path)})

    paths_to_try = [config_path] if config_path else DEFAULT_CONFIG_PATHS

    for path in paths_to_try:
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}", {"path": str(path), "error": str(e)}) from e

            if not isinstance(config, dict):
                raise ConfigError(f"Config root must be a mapping: {path}", {"path": str(path)})
            return merge_configs(get_default_config(), config)

    # Return minimal default config if no file found
    return get_default_config()


def get_default_config() -> dict[str, Any]:
    """Return minimal default configuration."""
    return {
        "engine": {
            "budget_ms": 8000,
            "per_probe_timeout_ms": 2500,
            "concurrency": 6,
            "asset_cap": 8,
            "slug_cap": 10,
            "probe_files": True,
        },
        "http": {
            "request_timeout": 5.0,
            "range_window": 4096,
            "verify_tls": True,
        },
        "outdated": {
            "enabled": True,
        },
        "registry": {
            "plugins": {},
            "aliases": {},
        },
        "profiles": {
            "fast": {
                "budget_ms": 4000,
                "per_probe_timeout_ms": 1500,
                "concurrency": 8,
                "asset_cap": 4,
                "probe_files": False,
            },
            "balanced": {
                "budget_ms": 8000,
                "per_probe_timeout_ms": 2500,
                "concurrency": 6,
                "asset_cap": 8,
            },
            "thorough": {
                "budget_ms": 20000,
                "per_probe_timeout_ms": 4000,
                "concurrency": 6,
                "asset_cap": 16,
                "slug_cap": 25,
            },
        },
    }


def get_profile(config: dict[str, Any], profile_name: str) -> dict[str, Any]:
    """Get a specific scan profile configuration.

    Args:
        config: Full configuration dictionary.
        profile_name: Name of the profile (fast, balanced, thorough).

    Returns:
        Profile configuration dictionary.
    """
    profiles = config.get("profiles", get_default_config()["profiles"])
    return profiles.get(profile_name, profiles["balanced"])


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries.

    Args:
        base: Base configuration.
        override: Override configuration (takes precedence).

    Returns:
        Merged configuration.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def build_settings(
    config: dict[str, Any],
    profile_name: str = "balanced",
    overrides: dict[str, Any] | None = None,
) -> EngineSettings:
    """Flatten config sections plus a profile into validated settings.

    Precedence, lowest first: ``engine``/``http`` sections, the profile,
    then explicit overrides (CLI flags).

    Raises:
        ConfigError: If any value fails validation.
    """
    registry = config.get("registry") or {}
    flat: dict[str, Any] = {}
    flat.update(config.get("engine") or {})
    flat.update(config.get("http") or {})
    flat["check_outdated"] = (config.get("outdated") or {}).get("enabled", True)
    flat["extra_plugins"] = registry.get("plugins") or {}
    flat["extra_aliases"] = registry.get("aliases") or {}
    flat.update(get_profile(config, profile_name))
    flat.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return EngineSettings(**flat)
    except ValidationError as e:
        raise ConfigError("Invalid configuration", {"errors": e.errors(include_url=False)}) from e
