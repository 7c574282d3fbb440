"""hypr-greeter Configuration System.

Layered configuration with Pydantic validation.

Config Layer Priority (highest to lowest):
1. Environment variables (HYPRGREET_ prefix, __ for nesting)
2. Config file (explicit path, or the first of SEARCH_PATHS that exists)
3. Defaults (defined in Pydantic models)

Config files are read with yaml.safe_load, so both YAML and JSON files
are accepted.

Usage:
    from hyprgreet.core.config import get_settings

    settings = get_settings()
    print(settings.sessions[0].command)  # "Hyprland" (default)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from textual.color import Color, ColorParseError

from hyprgreet.core.exceptions import ConfigurationError


SEARCH_PATHS: List[Path] = [
    Path("/etc/hypr-greeter/config.yaml"),
    Path("/etc/hypr-greeter/config.json"),
    Path("~/.config/hypr-greeter/config.yaml"),
]


# =============================================================================
# Sub-configuration Models (nested sections)
# =============================================================================


class SessionEntry(BaseModel):
    """A selectable session."""

    name: str
    command: str

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        """Reject blank session commands at load time."""
        if not v.split():
            raise ValueError("Session command must not be empty")
        return v


def default_sessions() -> List[SessionEntry]:
    return [
        SessionEntry(name="Hyprland", command="Hyprland"),
        SessionEntry(name="Sway", command="sway"),
        SessionEntry(name="TTY", command="/bin/bash"),
    ]


class UIConfig(BaseModel):
    """Display options."""

    title: str = "Welcome"
    background: str = "#1a1b26"
    show_clock: bool = True
    show_date: bool = True
    clock_format: str = "%H:%M"
    date_format: str = "%A, %d %B %Y"

    @field_validator("background")
    @classmethod
    def validate_background(cls, v: str) -> str:
        """Reject values Textual cannot parse as a colour."""
        try:
            Color.parse(v)
        except ColorParseError as e:
            raise ValueError(f"Invalid background colour: {v}") from e
        return v


class SecurityConfig(BaseModel):
    """Password field behavior (display only)."""

    mask_password: bool = True
    clear_password_on_error: bool = True


class GreetdConfig(BaseModel):
    """greetd connection settings."""

    socket_path: Optional[str] = None
    last_user_file: str = "/var/lib/greetd/last_user.json"


class LoggingConfig(BaseModel):
    """Logging configuration.

    The TUI owns stdout, so logs go to stderr or a file.
    """

    level: str = "INFO"
    format: str = "json"
    output: str = "stderr"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate renderer name."""
        if v not in ("json", "console"):
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'console'")
        return v


# =============================================================================
# Main Configuration Model
# =============================================================================


class Settings(BaseSettings):
    """Main settings class.

    Loads configuration from:
    1. Environment variables (HYPRGREET_ prefix)
    2. Config file
    3. Defaults defined in Pydantic models
    """

    model_config = SettingsConfigDict(
        env_prefix="HYPRGREET_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    sessions: List[SessionEntry] = Field(default_factory=default_sessions, min_length=1)
    keyboard_layout: Optional[str] = None
    ui: UIConfig = Field(default_factory=UIConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    greetd: GreetdConfig = Field(default_factory=GreetdConfig)
    logging_config: LoggingConfig = Field(default_factory=LoggingConfig, alias="logging")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # File contents arrive as init kwargs; environment wins over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @property
    def logging(self) -> LoggingConfig:
        """Alias for logging_config to match the file key."""
        return self.logging_config

    def session_env(self) -> List[str]:
        """Environment entries to pass with StartSession."""
        if self.keyboard_layout:
            return [f"XKB_DEFAULT_LAYOUT={self.keyboard_layout}"]
        return []


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML (or JSON) file.

    Args:
        path: Path to the file.

    Returns:
        Parsed content as dictionary.

    Raises:
        ConfigurationError: If file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Configuration file not found: {path}",
        )
    except OSError as e:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Cannot read configuration file {path}: {e}",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Invalid YAML in {path}: {e}",
        )

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            config_path=str(path),
            message=f"Configuration in {path} must be a mapping",
        )
    return content


def find_config_file() -> Optional[Path]:
    """Return the first existing file of SEARCH_PATHS, if any."""
    for candidate in SEARCH_PATHS:
        path = candidate.expanduser()
        if path.exists():
            return path
    return None


def create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create a Settings instance.

    Args:
        config_path: Explicit config file. Must exist when given.
            When None, SEARCH_PATHS are tried and defaults used if none exist.

    Returns:
        Configured Settings instance.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    if config_path is not None:
        path: Optional[Path] = Path(config_path).expanduser()
    else:
        path = find_config_file()

    data = load_yaml_file(path) if path is not None else {}

    try:
        return Settings(**data)
    except Exception as e:
        raise ConfigurationError(
            config_path=str(path or "<defaults>"),
            message=f"Configuration validation failed: {e}",
        ) from e


# =============================================================================
# Singleton Settings Access
# =============================================================================


class _SettingsHolder:
    """Thread-safe singleton holder for the Settings instance."""

    _instance: Optional[Settings] = None
    _lock: threading.Lock = threading.Lock()

    @classmethod
    def get(cls, force_reload: bool = False, **kwargs: Any) -> Settings:
        """Get or create the Settings singleton.

        Args:
            force_reload: If True, recreate settings even if already loaded.
            **kwargs: Arguments passed to create_settings().
        """
        if cls._instance is None or force_reload:
            with cls._lock:
                if cls._instance is None or force_reload:  # pragma: no cover
                    cls._instance = create_settings(**kwargs)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            cls._instance = None


def get_settings(force_reload: bool = False, **kwargs: Any) -> Settings:
    """Return the process-wide Settings, loading them on first use."""
    return _SettingsHolder.get(force_reload=force_reload, **kwargs)


def reset_settings() -> None:
    """Drop the cached Settings."""
    _SettingsHolder.reset()
