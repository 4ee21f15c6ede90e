"""
Directory-backed configuration monitor.

Treats a directory tree, such as a mounted configuration volume or a checkout
synchronized from the coordination store, as the store. Each file below the
monitored directory is one configuration path, named by its POSIX path
relative to that directory. Changes are picked up with the watchdog library.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .base import ConfigurationMonitor
from ...core.domain.exceptions import ConfigurationError
from ...core.interfaces.lifecycle import ILifecycleProgressMonitor

logger = logging.getLogger(__name__)


class ConfigurationDirectoryHandler(FileSystemEventHandler):
    """Maps file system events below the monitored directory onto cache changes."""

    def __init__(self, monitor: 'DirectoryConfigurationMonitor') -> None:
        super().__init__()
        self._monitor = monitor

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._monitor.refresh_file(Path(str(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._monitor.refresh_file(Path(str(event.src_path)))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._monitor.remove_file(Path(str(event.src_path)), event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._monitor.remove_file(Path(str(event.src_path)), event.is_directory)
        dest = Path(str(event.dest_path))
        if event.is_directory:
            self._monitor.refresh_tree(dest)
        else:
            self._monitor.refresh_file(dest)


class DirectoryConfigurationMonitor(ConfigurationMonitor):
    """
    Configuration monitor over ``store_directory / root_path``.

    Hidden files (any path segment starting with a dot) are ignored, which
    keeps editor swap files and atomic-rename staging files out of the cache.
    """

    def __init__(
        self,
        store_directory: Path,
        root_path: str,
        use_polling: bool = False,
        polling_interval: float = 1.0
    ) -> None:
        """
        Initialize the monitor.

        Args:
            store_directory: Directory acting as the coordination store
            root_path: Path below the store directory to mirror
            use_polling: Poll the file system instead of using native events
            polling_interval: Interval in seconds between polls
        """
        super().__init__(root_path)
        self.store_directory = store_directory
        self.use_polling = use_polling
        self.polling_interval = polling_interval
        self._observer: Optional[Any] = None

    @property
    def directory(self) -> Path:
        """Get the directory being mirrored."""
        return (self.store_directory / self.root_path).resolve()

    async def initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        if not self.directory.is_dir():
            raise ConfigurationError(
                f"Configuration directory does not exist: {self.directory}")
        monitor.report_progress(f"Using configuration directory {self.directory}")

    async def start(self, monitor: ILifecycleProgressMonitor) -> None:
        if self._observer is not None:
            logger.warning("Configuration directory monitor is already running")
            return

        # Watch first so nothing written during the initial read is missed
        if self.use_polling:
            observer = PollingObserver(timeout=self.polling_interval)
        else:
            observer = Observer()
        observer.schedule(
            ConfigurationDirectoryHandler(self), str(self.directory), recursive=True)
        observer.start()
        self._observer = observer

        snapshot = self._read_tree(self.directory)
        monitor.report_progress(f"Read {len(snapshot)} configuration files")
        for path in self._load_snapshot(snapshot):
            self._resync(path)

        logger.info(f"Started watching configuration directory: {self.directory}")

    async def stop(self, monitor: ILifecycleProgressMonitor) -> None:
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None

        logger.info(f"Stopped watching configuration directory: {self.directory}")

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        health['details'].update({
            'directory': str(self.directory),
            'observer_alive': self._observer is not None and self._observer.is_alive(),
            'use_polling': self.use_polling
        })
        return health

    def refresh_file(self, file_path: Path) -> None:
        """Re-read one file and apply its content to the cache."""
        path = self._to_configuration_path(file_path)
        if path is None:
            return
        try:
            data = file_path.read_bytes()
        except FileNotFoundError:
            self._apply_change(path, None)
            return
        except OSError as e:
            logger.warning(f"Unable to read configuration file {file_path}: {e}")
            return
        self._apply_change(path, data)

    def refresh_tree(self, directory: Path) -> None:
        """Re-read every file below a directory."""
        for path, data in self._read_tree(directory).items():
            self._apply_change(path, data)

    def remove_file(self, file_path: Path, is_directory: bool = False) -> None:
        """Remove a file, or every file below a directory, from the cache."""
        path = self._to_configuration_path(file_path)
        if path is None:
            return
        if not is_directory:
            self._apply_change(path, None)
            return
        # Records the directory itself if the first snapshot is still loading
        self._apply_change(path, None)
        prefix = f"{path}/"
        for cached in self.paths():
            if cached.startswith(prefix):
                self._apply_change(cached, None)

    def _resync(self, path: str) -> None:
        """Re-read a path whose content changed during the first snapshot."""
        target = self.directory / path
        if target.is_file():
            self.refresh_file(target)
        elif target.is_dir():
            current = self._read_tree(target)
            prefix = f"{path}/"
            for cached in self.paths():
                if cached.startswith(prefix) and cached not in current:
                    self._apply_change(cached, None)
            for child, data in current.items():
                self._apply_change(child, data)
        else:
            self.remove_file(target, is_directory=True)

    def _read_tree(self, directory: Path) -> Dict[str, bytes]:
        snapshot: Dict[str, bytes] = {}
        for file_path in sorted(directory.rglob("*")):
            if not file_path.is_file():
                continue
            path = self._to_configuration_path(file_path)
            if path is None:
                continue
            try:
                snapshot[path] = file_path.read_bytes()
            except OSError as e:
                logger.warning(f"Unable to read configuration file {file_path}: {e}")
        return snapshot

    def _to_configuration_path(self, file_path: Path) -> Optional[str]:
        try:
            relative = file_path.resolve().relative_to(self.directory)
        except ValueError:
            return None
        if not relative.parts or any(part.startswith(".") for part in relative.parts):
            return None
        return relative.as_posix()
