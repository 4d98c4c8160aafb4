"""Configuration package."""

from .settings import AppSettings, Environment, get_settings, load_settings

__all__ = ["AppSettings", "Environment", "get_settings", "load_settings"]
