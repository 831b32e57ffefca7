"""Custom exceptions for configuration and source specifications."""


class ConfigError(Exception):
    """Raised when configuration or source specification data cannot be processed."""
