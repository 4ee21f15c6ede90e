"""
Base configuration monitor.

Keeps the local mirror of a coordination store and fans changes out to
registered listeners. Concrete monitors decide how the store is read and
watched and feed the mirror through ``_load_snapshot`` and ``_apply_change``.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Set

from ...application.lifecycle import LifecycleComponent
from ...core.domain.exceptions import ConfigurationNotReady, ConfigurationPathNotFound
from ...core.interfaces.configuration import IConfigurationListener, IConfigurationMonitor
from ...core.interfaces.lifecycle import ILifecycleProgressMonitor

logger = logging.getLogger(__name__)


class ConfigurationMonitor(LifecycleComponent, IConfigurationMonitor):
    """
    Local cache of configuration content keyed by logical path.

    Listener callbacks run on whatever thread applies the change. A listener
    that raises is logged and does not stop delivery to the others.
    """

    def __init__(self, root_path: str, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.root_path = root_path
        self._listeners: List[IConfigurationListener] = []
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.RLock()
        self._cache_initialized = False
        # Paths changed before the first snapshot was loaded
        self._pending: Set[str] = set()

    @property
    def listeners(self) -> List[IConfigurationListener]:
        return self._listeners

    def is_cache_initialized(self) -> bool:
        with self._lock:
            return self._cache_initialized

    def get_configuration_data_for(self, path: str) -> bytes:
        with self._lock:
            if not self._cache_initialized:
                raise ConfigurationNotReady()
            try:
                return self._cache[path]
            except KeyError:
                raise ConfigurationPathNotFound(path)

    def paths(self) -> List[str]:
        """Get every cached path, sorted."""
        with self._lock:
            return sorted(self._cache)

    async def terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        with self._lock:
            self._cache.clear()
            self._cache_initialized = False
            self._pending.clear()
        self._listeners.clear()
        logger.info(f"Configuration monitor for '{self.root_path}' terminated")

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        with self._lock:
            health['details'].update({
                'root_path': self.root_path,
                'cache_initialized': self._cache_initialized,
                'cached_paths': len(self._cache),
                'listeners_count': len(self._listeners)
            })
        return health

    def _load_snapshot(self, snapshot: Mapping[str, bytes]) -> List[str]:
        """
        Populate the cache from a full read of the store.

        Every path is announced as added, then the cache is marked initialized
        and listeners are told so. A later snapshot only applies the
        differences, including paths that disappeared.

        Returns:
            Paths that changed while the snapshot was being read. Their
            cached content may predate the change and must be read again.
        """
        with self._lock:
            if self._cache_initialized:
                first_load = False
                pending: List[str] = []
            else:
                first_load = True
                self._cache.update(snapshot)
                self._cache_initialized = True
                pending = sorted(self._pending)
                self._pending.clear()

        if not first_load:
            for path in self.paths():
                if path not in snapshot:
                    self._apply_change(path, None)
            for path, data in snapshot.items():
                self._apply_change(path, data)
            return pending

        for path, data in snapshot.items():
            self._notify("on_configuration_added", path, data)
        logger.info(
            f"Configuration cache for '{self.root_path}' loaded with {len(snapshot)} entries")
        self._notify("on_configuration_cache_initialized")
        return pending

    def _apply_change(self, path: str, data: Optional[bytes]) -> None:
        """
        Apply a single store change to the cache.

        Before the first snapshot is loaded the change is only remembered;
        see ``_load_snapshot``.

        Args:
            path: Logical configuration path
            data: New content, or None if the path was deleted
        """
        with self._lock:
            if not self._cache_initialized:
                self._pending.add(path)
                return
            existed = path in self._cache
            if data is None:
                if not existed:
                    return
                del self._cache[path]
                event = "on_configuration_deleted"
            else:
                if existed and self._cache[path] == data:
                    return
                self._cache[path] = data
                event = "on_configuration_updated" if existed else "on_configuration_added"

        if data is None:
            self._notify(event, path)
        else:
            self._notify(event, path, data)

    def _notify(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception as e:
                logger.error(f"Error in configuration listener {event}: {e}")
