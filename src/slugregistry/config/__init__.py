from .settings import (
    DatabaseConfig,
    LoggingConfig,
    Settings,
    SlugConfig,
    configure_logging,
    load_settings,
)

__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "Settings",
    "SlugConfig",
    "configure_logging",
    "load_settings",
]
