"""Configuration system for wrybridge using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.wrybridge] section (project-level)
3. ./wrybridge.toml (project-level, explicit)
4. ~/.config/wrybridge/config.toml (user-level, overrides project)
5. Environment variables (highest priority)

Environment variables use WRYBRIDGE_ prefix with nested delimiter __.
Example: WRYBRIDGE_PROTOCOL__SCHEME, WRYBRIDGE_SCRIPTS__INVOKE_KEY
"""

from __future__ import annotations

import os
import re
import sys

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .log import warn
from .models import FreezePrototype


if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*$")

SECTION_NAMES = ("protocol", "static", "scripts", "registry", "log")


def _user_config_path() -> Path:
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "~")) / "wrybridge" / "config.toml"
    return Path("~/.config/wrybridge/config.toml")


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    explicit = Path("wrybridge.toml")
    if explicit.exists():
        files.append(explicit)

    user_config = _user_config_path().expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("WRYBRIDGE_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            warn(f"Ignoring unreadable config file {config_file}: {e}")
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("wrybridge", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ProtocolSettings(BaseSettings):
    """Custom scheme the router answers on.

    Environment prefix: WRYBRIDGE_PROTOCOL__
    Example: WRYBRIDGE_PROTOCOL__SCHEME=wry
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE_PROTOCOL__",
        extra="ignore",
    )

    scheme: str = Field(default="wry", description="Custom URL scheme intercepted by the view")
    host: str = Field(default="localhost", description="Host part of the bridge origin")
    protocol_scheme: Literal["http", "https"] = Field(
        default="http",
        description="Scheme of the rewritten origin (<scheme>.localhost) used on Windows",
    )

    @field_validator("scheme")
    @classmethod
    def _validate_scheme(cls, v: str) -> str:
        v = v.lower()
        if not _SCHEME_PATTERN.match(v):
            msg = f"Invalid URL scheme: {v!r}"
            raise ValueError(msg)
        return v


class StaticSettings(BaseSettings):
    """Static asset serving.

    Environment prefix: WRYBRIDGE_STATIC__
    Example: WRYBRIDGE_STATIC__ROOT=dist
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE_STATIC__",
        extra="ignore",
    )

    root: str = Field(default="", description="Directory served under the bridge origin")
    index: str = Field(default="index.html", description="Document served for '/'")


class ScriptSettings(BaseSettings):
    """Initialization script parameters.

    Environment prefix: WRYBRIDGE_SCRIPTS__
    Example: WRYBRIDGE_SCRIPTS__FREEZE_PROTOTYPE=enabled
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE_SCRIPTS__",
        extra="ignore",
    )

    invoke_key: str = Field(
        default="wrybridge",
        description="Tag sent with every invoke request (a protocol tag, not a secret)",
    )
    fetch_channel_data_command: str = "plugin:__CHANNEL__|fetch"
    listeners_object_id: str = "__wrybridge_unstable_listeners_object_id__"
    listeners_function_id: str = "__wrybridge_unstable_listeners_function_id__"
    freeze_prototype: FreezePrototype = FreezePrototype.DISABLED


class RegistrySettings(BaseSettings):
    """Command registry behaviour.

    Environment prefix: WRYBRIDGE_REGISTRY__
    Example: WRYBRIDGE_REGISTRY__STRICT=true
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE_REGISTRY__",
        extra="ignore",
    )

    strict: bool = Field(
        default=False,
        description="Reject duplicate command names instead of letting the last one win",
    )


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: WRYBRIDGE_LOG__
    Example: WRYBRIDGE_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: str = "%(name)s - %(levelname)s - %(message)s"


class BridgeSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.wrybridge] section
    3. ./wrybridge.toml (project-level)
    4. ~/.config/wrybridge/config.toml (user-level, overrides project)
    5. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="WRYBRIDGE__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    protocol: ProtocolSettings = Field(default_factory=ProtocolSettings)
    static: StaticSettings = Field(default_factory=StaticSettings)
    scripts: ScriptSettings = Field(default_factory=ScriptSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        toml_config = _load_toml_config()
        # Section objects built from TOML still read their env prefix,
        # so environment variables keep the highest priority.
        merged = _deep_merge(toml_config, data)
        for name, section_cls in _SECTION_CLASSES.items():
            value = merged.get(name)
            if isinstance(value, dict):
                merged[name] = section_cls(**_without_env_overrides(section_cls, value))
        super().__init__(**merged)

    def to_toml(self) -> str:
        """Export settings as TOML string."""
        lines = ["# wrybridge configuration", "# Generated by: wrybridge config --toml", ""]
        data = self.model_dump(mode="json")
        for section_name in SECTION_NAMES:
            lines.append(f"[{section_name}]")
            for field_name, field_value in data[section_name].items():
                if isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                elif isinstance(field_value, str):
                    value_str = _toml_string(field_value)
                else:
                    value_str = str(field_value)
                lines.append(f"{field_name} = {value_str}")
            lines.append("")
        return "\n".join(lines)

    def to_env(self) -> str:
        """Export settings as shell environment variables."""
        lines = [
            "# wrybridge environment variables",
            "# Generated by: wrybridge config --env",
            "",
        ]
        data = self.model_dump(mode="json")
        for section_name in SECTION_NAMES:
            for field_name, field_value in data[section_name].items():
                env_name = f"WRYBRIDGE_{section_name.upper()}__{field_name.upper()}"
                if isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                else:
                    value_str = str(field_value)
                lines.append(f"export {env_name}='{value_str}'")
        return "\n".join(lines)

    def show(self) -> str:
        """Format settings as a readable table."""
        lines = ["wrybridge configuration", "=" * 60]
        data = self.model_dump(mode="json")
        for section_name in SECTION_NAMES:
            lines.append(f"\n[{section_name}]")
            lines.append("-" * 40)
            for field_name, field_value in data[section_name].items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:26} = {value_str}")
        return "\n".join(lines)


_SECTION_CLASSES: dict[str, type[BaseSettings]] = {
    "protocol": ProtocolSettings,
    "static": StaticSettings,
    "scripts": ScriptSettings,
    "registry": RegistrySettings,
    "log": LogSettings,
}


def _without_env_overrides(
    section_cls: type[BaseSettings], values: dict[str, Any]
) -> dict[str, Any]:
    """Drop file values that an environment variable overrides."""
    prefix = section_cls.model_config.get("env_prefix", "")
    env_keys = {k.upper() for k in os.environ}
    return {k: v for k, v in values.items() if f"{prefix}{k}".upper() not in env_keys}


def _toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return BridgeSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


def reload_settings() -> BridgeSettings:
    """Reload settings from all sources."""
    clear_settings()
    return get_settings()
