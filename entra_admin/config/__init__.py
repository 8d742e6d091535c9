"""Configuration module for the Entra ID user manager."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
