"""
Service configuration infrastructure.

This module provides configuration models and loading from files and
environment variables.
"""

from .models import ServiceConfig, StoreConfig, LoggingConfig
from .loader import ConfigLoader

__all__ = [
    "ServiceConfig",
    "StoreConfig",
    "LoggingConfig",
    "ConfigLoader",
]
