"""Configuration module for the identity service."""
from .settings import AppConfig, ConfigurationError, load_settings

__all__ = ["AppConfig", "ConfigurationError", "load_settings"]
