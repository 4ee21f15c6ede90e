"""
Configuration monitoring interfaces.

A configuration monitor mirrors the content of a coordination store into a
local cache and notifies listeners about changes. A configurable microservice
consumes that cache and exposes whether its configuration is ready.
"""

from abc import ABC, abstractmethod
from typing import List

from .lifecycle import ILifecycleComponent
from ..domain.state import ConfigurationState


class IConfigurationListener(ABC):
    """Callback surface for configuration cache events."""

    @abstractmethod
    def on_configuration_cache_initialized(self) -> None:
        """Called once, after the first full synchronization with the store."""
        pass

    @abstractmethod
    def on_configuration_added(self, path: str, data: bytes) -> None:
        """
        Called when configuration is added for a path.

        Args:
            path: Logical configuration path
            data: Content stored for the path
        """
        pass

    @abstractmethod
    def on_configuration_updated(self, path: str, data: bytes) -> None:
        """
        Called when configuration for a path changes.

        Args:
            path: Logical configuration path
            data: New content stored for the path
        """
        pass

    @abstractmethod
    def on_configuration_deleted(self, path: str) -> None:
        """
        Called when configuration for a path is removed.

        Args:
            path: Logical configuration path
        """
        pass


class IConfigurationMonitor(ILifecycleComponent):
    """Watches a coordination store and caches its content locally."""

    @property
    @abstractmethod
    def listeners(self) -> List[IConfigurationListener]:
        """Get the mutable list of registered listeners."""
        pass

    @abstractmethod
    def is_cache_initialized(self) -> bool:
        """Check whether the first full synchronization has completed."""
        pass

    @abstractmethod
    def get_configuration_data_for(self, path: str) -> bytes:
        """
        Get cached content for a path.

        Args:
            path: Logical configuration path

        Returns:
            Content stored for the path

        Raises:
            ConfigurationNotReady: If the cache is not initialized
            ConfigurationPathNotFound: If the path is unknown
        """
        pass


class IConfigurableMicroservice(ILifecycleComponent):
    """Microservice whose configuration is loaded from a coordination store."""

    @abstractmethod
    async def wait_for_configuration_ready(self) -> None:
        """
        Block until configuration succeeded, failed or timed out.

        Raises:
            ConfigurationFailed: If configuration reached the failed state
            ConfigurationTimeout: If the deadline elapsed first
        """
        pass

    @abstractmethod
    def get_configuration_data_for(self, path: str) -> bytes:
        """
        Get configuration content for a path.

        Raises:
            ConfigurationNotReady: If the configuration cache is not ready
        """
        pass

    @abstractmethod
    def get_configuration_state(self) -> ConfigurationState:
        """Get the current configuration state."""
        pass

    @abstractmethod
    def is_configuration_cache_ready(self) -> bool:
        """Check whether the configuration cache has been populated."""
        pass
