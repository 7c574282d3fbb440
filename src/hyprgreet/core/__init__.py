"""Core module for hypr-greeter.

Exports the core components: exceptions and configuration.
"""

from hyprgreet.core.exceptions import (
    GreeterError,
    ConfigurationError,
    InvalidStateTransition,
    LoginPhase,
    LoginError,
    ConfigError,
    DaemonConnectionError,
    DaemonNotRunningError,
    DaemonIOError,
    ProtocolError,
    AuthError,
)
from hyprgreet.core.config import (
    get_settings,
    reset_settings,
    create_settings,
    Settings,
    SessionEntry,
    UIConfig,
    SecurityConfig,
    GreetdConfig,
    LoggingConfig,
)

__all__ = [
    # Exceptions
    "GreeterError",
    "ConfigurationError",
    "InvalidStateTransition",
    "LoginPhase",
    "LoginError",
    "ConfigError",
    "DaemonConnectionError",
    "DaemonNotRunningError",
    "DaemonIOError",
    "ProtocolError",
    "AuthError",
    # Configuration
    "get_settings",
    "reset_settings",
    "create_settings",
    "Settings",
    "SessionEntry",
    "UIConfig",
    "SecurityConfig",
    "GreetdConfig",
    "LoggingConfig",
]
