"""
In-process configuration monitor.
"""

import logging
import threading
from typing import Dict, Mapping, Optional

from .base import ConfigurationMonitor
from ...core.interfaces.lifecycle import ILifecycleProgressMonitor

logger = logging.getLogger(__name__)


class InMemoryConfigurationMonitor(ConfigurationMonitor):
    """
    Configuration monitor over a store held in memory.

    The store can be changed at any time with ``put`` and ``delete``. Changes
    reach listeners only while the monitor is started; starting loads the
    whole store as the initial snapshot.
    """

    def __init__(
        self,
        root_path: str = "",
        initial: Optional[Mapping[str, bytes]] = None,
        name: Optional[str] = None
    ) -> None:
        super().__init__(root_path, name)
        self._store: Dict[str, bytes] = dict(initial or {})
        # Held while changes are delivered so they apply in store order
        self._store_lock = threading.RLock()
        self._watching = False

    def put(self, path: str, data: bytes) -> None:
        """Store content for a path."""
        with self._store_lock:
            self._store[path] = data
            if self._watching:
                self._apply_change(path, data)

    def delete(self, path: str) -> None:
        """Remove a path from the store."""
        with self._store_lock:
            self._store.pop(path, None)
            if self._watching:
                self._apply_change(path, None)

    async def start(self, monitor: ILifecycleProgressMonitor) -> None:
        with self._store_lock:
            monitor.report_progress(
                f"Loading {len(self._store)} configuration entries")
            self._watching = True
            self._load_snapshot(dict(self._store))

    async def stop(self, monitor: ILifecycleProgressMonitor) -> None:
        with self._store_lock:
            self._watching = False
        logger.debug(f"Stopped watching in-memory store for '{self.root_path}'")
