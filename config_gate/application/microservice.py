"""
Microservice base classes.

``ConfigurableMicroservice`` owns a configuration monitor, tracks whether the
monitor's cache has been populated, and lets callers block until the
configuration has been judged usable.
"""

import asyncio
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .lifecycle import (
    CompositeLifecycleStep,
    InitializeComponentLifecycleStep,
    LifecycleComponent,
    StartComponentLifecycleStep,
    StopComponentLifecycleStep,
)
from .listeners import CallbackConfigurationListener
from ..core.domain.exceptions import (
    ConfigurationFailed,
    ConfigurationNotReady,
    ConfigurationTimeout,
    LifecycleException,
)
from ..core.domain.state import ConfigurationState, ConfigurationStateHolder
from ..core.interfaces.configuration import IConfigurableMicroservice, IConfigurationMonitor
from ..core.interfaces.lifecycle import ILifecycleProgressMonitor
from ..infrastructure.config.models import ServiceConfig
from ..infrastructure.monitor.directory import DirectoryConfigurationMonitor

logger = logging.getLogger(__name__)

MonitorFactory = Callable[[str], IConfigurationMonitor]


class Microservice(LifecycleComponent):
    """Base class for microservices built from a service configuration."""

    def __init__(self, config: ServiceConfig) -> None:
        super().__init__(config.name)
        self._config = config
        self._initialized_at: Optional[float] = None

    @property
    def config(self) -> ServiceConfig:
        """Get the service configuration."""
        return self._config

    @property
    def instance_id(self) -> str:
        """Get the id of the instance this service belongs to."""
        return self._config.instance_id

    @property
    def instance_configuration_path(self) -> str:
        """Get the store path holding this instance's configuration."""
        return self._config.instance_configuration_path

    async def initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        logger.info(f"Initializing {self.name} for instance '{self.instance_id}'")
        self._initialized_at = time.monotonic()

    async def terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        logger.info(f"Terminating {self.name}")

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        uptime = None
        if self._initialized_at is not None:
            uptime = time.monotonic() - self._initialized_at
        health['details'].update({
            'instance_id': self.instance_id,
            'uptime': uptime
        })
        return health


class ConfigurableMicroservice(Microservice, IConfigurableMicroservice):
    """
    Base class for microservices that monitor their configuration for updates.

    The configuration monitor is created and started during initialization.
    Until the monitor reports its cache as initialized, change notifications
    are ignored and configuration data cannot be read. Some other actor
    judges the loaded configuration and moves the configuration state to
    SUCCEEDED or FAILED; ``wait_for_configuration_ready`` blocks on that.
    """

    # Max wait time for configuration in seconds
    MAX_CONFIGURATION_WAIT_SEC: float = 30

    # Interval between configuration state checks in seconds
    CONFIGURATION_POLL_INTERVAL_SEC: float = 1

    def __init__(
        self,
        config: ServiceConfig,
        monitor_factory: Optional[MonitorFactory] = None
    ) -> None:
        """
        Initialize the microservice.

        Args:
            config: Service configuration
            monitor_factory: Builds the configuration monitor for a store path.
                Defaults to a directory-backed monitor over ``config.store``.
        """
        super().__init__(config)
        self._monitor_factory = monitor_factory
        self._configuration_monitor: Optional[IConfigurationMonitor] = None
        self._configuration_state = ConfigurationStateHolder()
        self._configuration_cache_ready = threading.Event()
        self._listener = CallbackConfigurationListener(
            on_cache_initialized=self.on_configuration_cache_initialized,
            on_added=self.on_configuration_added,
            on_updated=self.on_configuration_updated,
            on_deleted=self.on_configuration_deleted
        )

    @property
    def configuration_monitor(self) -> Optional[IConfigurationMonitor]:
        """Get the configuration monitor, if created."""
        return self._configuration_monitor

    def on_configuration_cache_initialized(self) -> None:
        logger.info("Configuration cache initialized.")
        self._configuration_cache_ready.set()
        if self._configuration_state.advance_to_loading():
            logger.debug("Configuration state is now loading")

    def on_configuration_added(self, path: str, data: bytes) -> None:
        if self.is_configuration_cache_ready():
            logger.info(f"Configuration added for '{path}'.")

    def on_configuration_updated(self, path: str, data: bytes) -> None:
        if self.is_configuration_cache_ready():
            logger.info(f"Configuration updated for '{path}'.")

    def on_configuration_deleted(self, path: str) -> None:
        if self.is_configuration_cache_ready():
            logger.info(f"Configuration deleted for '{path}'.")

    def get_configuration_data_for(self, path: str) -> bytes:
        """
        Get configuration content for a path.

        Args:
            path: Logical configuration path

        Returns:
            Content exactly as held by the configuration monitor

        Raises:
            ConfigurationNotReady: If the configuration cache is not ready
        """
        monitor = self._configuration_monitor
        if not self.is_configuration_cache_ready() or monitor is None:
            raise ConfigurationNotReady()
        return monitor.get_configuration_data_for(path)

    async def initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        if self._configuration_monitor is not None:
            raise LifecycleException(
                f"{self.name} already has a configuration monitor; terminate it first")
        await super().initialize(monitor)

        # Organizes steps for initializing microservice.
        initialize = CompositeLifecycleStep(f"Initialize {self.name}")

        # Create and initialize configuration monitor.
        configuration_monitor = self.create_configuration_monitor()
        initialize.add_step(InitializeComponentLifecycleStep(
            self, configuration_monitor, "Configuration Monitor",
            "Unable to initialize configuration monitor", require=True))

        # Start configuration monitor.
        initialize.add_step(StartComponentLifecycleStep(
            self, configuration_monitor, "Configuration Monitor",
            "Unable to start configuration monitor", require=True))

        await initialize.execute(monitor)

    def create_configuration_monitor(self) -> IConfigurationMonitor:
        """
        Create the configuration monitor and register for its events.

        Returns:
            The new configuration monitor
        """
        path = self.instance_configuration_path
        if self._monitor_factory is not None:
            configuration_monitor = self._monitor_factory(path)
        else:
            store = self.config.store
            configuration_monitor = DirectoryConfigurationMonitor(
                Path(store.directory), path, use_polling=store.use_polling)

        configuration_monitor.listeners.append(self._listener)
        self._configuration_monitor = configuration_monitor
        return configuration_monitor

    async def terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        await super().terminate(monitor)

        configuration_monitor = self._configuration_monitor
        if configuration_monitor is None:
            logger.warning(f"{self.name} has no configuration monitor to terminate")
            return

        # Organizes steps for stopping microservice.
        stop = CompositeLifecycleStep(f"Stop {self.name}")
        stop.add_step(StopComponentLifecycleStep(
            self, configuration_monitor, "Configuration Monitor"))

        # The cache-ready flag stays set; reads fail once the monitor is gone
        try:
            await stop.execute(monitor)
            await configuration_monitor.lifecycle_terminate(monitor)
        finally:
            self._configuration_monitor = None

    async def wait_for_configuration_ready(self) -> None:
        """
        Wait until configuration is loaded successfully.

        Polls the configuration state until it is SUCCEEDED, FAILED or the
        wait deadline passes. Cancelling the waiting task ends the wait
        quietly: the call returns as if configuration were ready. That
        includes the cancellation ``asyncio.wait_for`` uses for its own
        timeout, so ``wait_for`` returns normally instead of raising.
        Callers must check ``get_configuration_state()`` afterwards and
        treat anything other than SUCCEEDED as not ready.

        Raises:
            ConfigurationFailed: If the configuration state is FAILED
            ConfigurationTimeout: If the deadline passes first
        """
        logger.info("Waiting for configuration to be loaded...")
        timeout = self.MAX_CONFIGURATION_WAIT_SEC
        deadline = time.monotonic() + timeout
        while True:
            if time.monotonic() > deadline:
                logger.error(f"Configuration not ready after {timeout:g}s")
                raise ConfigurationTimeout(timeout)
            state = self.get_configuration_state()
            if state is ConfigurationState.FAILED:
                logger.error("Microservice configuration failed.")
                raise ConfigurationFailed()
            if state is ConfigurationState.SUCCEEDED:
                logger.info("Configuration loaded successfully.")
                return
            try:
                await asyncio.sleep(self.CONFIGURATION_POLL_INTERVAL_SEC)
            except asyncio.CancelledError:
                logger.warning("Wait for configuration cancelled")
                return

    def get_configuration_state(self) -> ConfigurationState:
        return self._configuration_state.get()

    def set_configuration_state(self, state: ConfigurationState) -> None:
        """
        Record the judgement of the loaded configuration.

        Args:
            state: New configuration state

        Raises:
            InvalidStateTransition: If the state cannot move to ``state``
        """
        previous = self._configuration_state.set(state)
        if previous is not state:
            logger.info(f"Configuration state changed: {previous.value} -> {state.value}")

    def is_configuration_cache_ready(self) -> bool:
        return self._configuration_cache_ready.is_set()

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        state = self.get_configuration_state()
        monitor_health = None
        if self._configuration_monitor is not None:
            monitor_health = await self._configuration_monitor.check_health()
        health['healthy'] = health['healthy'] and state is not ConfigurationState.FAILED
        health['details'].update({
            'configuration_state': state.value,
            'configuration_cache_ready': self.is_configuration_cache_ready(),
            'configuration_monitor': monitor_health
        })
        return health
