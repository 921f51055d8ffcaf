"""Configuration module for the techaccess client."""
from .settings import ClientConfig, TransportMode, load_settings, save_host

__all__ = ["ClientConfig", "TransportMode", "load_settings", "save_host"]
