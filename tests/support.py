"""
Test doubles shared by the config-gate tests.
"""

from typing import Dict, List, Optional, Tuple

from config_gate.application.lifecycle import LifecycleComponent
from config_gate.application.microservice import ConfigurableMicroservice
from config_gate.core.interfaces.configuration import IConfigurationListener, IConfigurationMonitor
from config_gate.core.interfaces.lifecycle import ILifecycleProgressMonitor


class RecordingListener(IConfigurationListener):
    """Listener recording every event it receives."""

    def __init__(self) -> None:
        self.events: List[Tuple] = []

    def on_configuration_cache_initialized(self) -> None:
        self.events.append(("initialized",))

    def on_configuration_added(self, path: str, data: bytes) -> None:
        self.events.append(("added", path, data))

    def on_configuration_updated(self, path: str, data: bytes) -> None:
        self.events.append(("updated", path, data))

    def on_configuration_deleted(self, path: str) -> None:
        self.events.append(("deleted", path))


class StubConfigurationMonitor(LifecycleComponent, IConfigurationMonitor):
    """Monitor stub with scriptable failures and a call log."""

    def __init__(self, data: Optional[Dict[str, bytes]] = None) -> None:
        super().__init__("StubConfigurationMonitor")
        self._listeners: List[IConfigurationListener] = []
        self.data = dict(data or {})
        self.calls: List[str] = []
        self.fail_on: Dict[str, Exception] = {}
        self.cache_initialized = False

    @property
    def listeners(self) -> List[IConfigurationListener]:
        return self._listeners

    def is_cache_initialized(self) -> bool:
        return self.cache_initialized

    def get_configuration_data_for(self, path: str) -> bytes:
        self.calls.append(f"get:{path}")
        return self.data[path]

    async def _step(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    async def initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._step("initialize")

    async def start(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._step("start")

    async def stop(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._step("stop")

    async def terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._step("terminate")

    def signal_cache_initialized(self) -> None:
        self.cache_initialized = True
        for listener in self._listeners:
            listener.on_configuration_cache_initialized()


class FastConfigurableMicroservice(ConfigurableMicroservice):
    """Configurable microservice with a short readiness deadline."""

    MAX_CONFIGURATION_WAIT_SEC = 0.5
    CONFIGURATION_POLL_INTERVAL_SEC = 0.02


