"""
Configuration listener built from plain callables.
"""

from typing import Callable, Optional

from ..core.interfaces.configuration import IConfigurationListener


class CallbackConfigurationListener(IConfigurationListener):
    """
    Listener that forwards each event to a callable.

    Lets a component receive configuration events without itself being a
    listener, so the monitor never depends on the consumer's concrete type.
    Missing callbacks ignore the event.
    """

    def __init__(
        self,
        on_cache_initialized: Optional[Callable[[], None]] = None,
        on_added: Optional[Callable[[str, bytes], None]] = None,
        on_updated: Optional[Callable[[str, bytes], None]] = None,
        on_deleted: Optional[Callable[[str], None]] = None
    ) -> None:
        self._on_cache_initialized = on_cache_initialized
        self._on_added = on_added
        self._on_updated = on_updated
        self._on_deleted = on_deleted

    def on_configuration_cache_initialized(self) -> None:
        if self._on_cache_initialized:
            self._on_cache_initialized()

    def on_configuration_added(self, path: str, data: bytes) -> None:
        if self._on_added:
            self._on_added(path, data)

    def on_configuration_updated(self, path: str, data: bytes) -> None:
        if self._on_updated:
            self._on_updated(path, data)

    def on_configuration_deleted(self, path: str) -> None:
        if self._on_deleted:
            self._on_deleted(path)
