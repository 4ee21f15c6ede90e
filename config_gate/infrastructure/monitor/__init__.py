"""
Configuration monitors mirroring a coordination store into a local cache.
"""

from .base import ConfigurationMonitor
from .memory import InMemoryConfigurationMonitor
from .directory import DirectoryConfigurationMonitor, ConfigurationDirectoryHandler

__all__ = [
    "ConfigurationMonitor",
    "InMemoryConfigurationMonitor",
    "DirectoryConfigurationMonitor",
    "ConfigurationDirectoryHandler",
]
