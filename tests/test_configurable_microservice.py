"""
Tests for ConfigurableMicroservice.

This module tests listener gating, configuration reads, the readiness wait
and the lifecycle orchestration of the configuration monitor.
"""

import asyncio
import logging
import time

import pytest

from config_gate.application.lifecycle import LifecycleProgressMonitor
from config_gate.application.microservice import ConfigurableMicroservice
from config_gate.core.domain.exceptions import (
    ConfigurationFailed,
    ConfigurationNotReady,
    ConfigurationTimeout,
    InvalidStateTransition,
    LifecycleException,
    LifecycleStepFailed,
)
from config_gate.core.domain.state import ConfigurationState
from config_gate.core.interfaces.lifecycle import LifecycleStatus
from config_gate.infrastructure.config.models import ServiceConfig
from config_gate.infrastructure.monitor.directory import DirectoryConfigurationMonitor
from config_gate.infrastructure.monitor.memory import InMemoryConfigurationMonitor

from support import FastConfigurableMicroservice, StubConfigurationMonitor

SERVICE_LOGGER = "config_gate.application.microservice"


class TestInitialState:
    """Test cases for a freshly created service."""

    def test_defaults(self, stub_service: FastConfigurableMicroservice) -> None:
        """A new service has no monitor, no cache and NOT_STARTED state."""
        assert stub_service.get_configuration_state() is ConfigurationState.NOT_STARTED
        assert stub_service.is_configuration_cache_ready() is False
        assert stub_service.configuration_monitor is None
        assert stub_service.status is LifecycleStatus.CREATED

    def test_deadline_constants(self) -> None:
        """The readiness wait uses a 30s deadline polled every second."""
        assert ConfigurableMicroservice.MAX_CONFIGURATION_WAIT_SEC == 30
        assert ConfigurableMicroservice.CONFIGURATION_POLL_INTERVAL_SEC == 1

    def test_instance_configuration_path(self, stub_service: FastConfigurableMicroservice) -> None:
        """The monitor root is the instance path below the store root."""
        assert stub_service.instance_configuration_path == "config-gate/acme"


class TestListenerGating:
    """Test cases for configuration event gating."""

    def test_events_before_cache_ready_are_silent(
        self, stub_service: FastConfigurableMicroservice, caplog
    ) -> None:
        """Mutation events before the cache is ready leave no trace."""
        caplog.set_level(logging.DEBUG, logger=SERVICE_LOGGER)

        for _ in range(3):
            stub_service.on_configuration_added("a.yaml", b"a")
            stub_service.on_configuration_updated("a.yaml", b"b")
            stub_service.on_configuration_deleted("a.yaml")

        assert [r for r in caplog.records if r.name == SERVICE_LOGGER] == []
        assert stub_service.is_configuration_cache_ready() is False

    def test_events_after_cache_ready_are_logged_once(
        self, stub_service: FastConfigurableMicroservice, caplog
    ) -> None:
        """Each mutation event after cache initialization logs exactly once."""
        caplog.set_level(logging.INFO, logger=SERVICE_LOGGER)
        stub_service.on_configuration_cache_initialized()
        caplog.clear()

        stub_service.on_configuration_added("a.yaml", b"a")
        stub_service.on_configuration_updated("a.yaml", b"b")
        stub_service.on_configuration_deleted("a.yaml")

        messages = [r.getMessage() for r in caplog.records if r.name == SERVICE_LOGGER]
        assert messages == [
            "Configuration added for 'a.yaml'.",
            "Configuration updated for 'a.yaml'.",
            "Configuration deleted for 'a.yaml'.",
        ]

    def test_cache_ready_is_permanent(self, stub_service: FastConfigurableMicroservice) -> None:
        """Cache readiness never reverts, even if signalled again."""
        stub_service.on_configuration_cache_initialized()
        stub_service.on_configuration_cache_initialized()
        stub_service.on_configuration_deleted("a.yaml")

        assert stub_service.is_configuration_cache_ready() is True

    def test_cache_initialized_moves_to_loading(self, stub_service: FastConfigurableMicroservice) -> None:
        """Cache initialization marks configuration as loading."""
        stub_service.on_configuration_cache_initialized()

        assert stub_service.get_configuration_state() is ConfigurationState.LOADING

    def test_cache_initialized_keeps_terminal_state(self, stub_service: FastConfigurableMicroservice) -> None:
        """A terminal state set before cache initialization is kept."""
        stub_service.set_configuration_state(ConfigurationState.FAILED)

        stub_service.on_configuration_cache_initialized()

        assert stub_service.get_configuration_state() is ConfigurationState.FAILED


class TestConfigurationData:
    """Test cases for get_configuration_data_for."""

    def test_not_ready_before_initialize(self, stub_service: FastConfigurableMicroservice) -> None:
        """Reads before any monitor exists fail."""
        with pytest.raises(ConfigurationNotReady):
            stub_service.get_configuration_data_for("tenants/acme.yaml")

    @pytest.mark.asyncio
    async def test_not_ready_before_cache_initialized(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Reads fail while the monitor has not signalled cache initialization."""
        await stub_service.lifecycle_initialize(progress)

        with pytest.raises(ConfigurationNotReady):
            stub_service.get_configuration_data_for("tenants/acme.yaml")
        assert "get:tenants/acme.yaml" not in stub_monitor.calls

    @pytest.mark.asyncio
    async def test_pass_through(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Reads return exactly the monitor's bytes."""
        payload = bytes(range(256))
        stub_monitor.data["blob.bin"] = payload
        await stub_service.lifecycle_initialize(progress)
        stub_monitor.signal_cache_initialized()

        assert stub_service.get_configuration_data_for("blob.bin") is payload
        assert stub_monitor.calls[-1] == "get:blob.bin"


class TestWaitForConfigurationReady:
    """Test cases for wait_for_configuration_ready."""

    @pytest.mark.asyncio
    async def test_returns_when_succeeded(self, stub_service: FastConfigurableMicroservice) -> None:
        """Returns immediately when configuration already succeeded."""
        stub_service.set_configuration_state(ConfigurationState.SUCCEEDED)

        await stub_service.wait_for_configuration_ready()

    @pytest.mark.asyncio
    async def test_returns_when_succeeded_later(self, stub_service: FastConfigurableMicroservice) -> None:
        """Returns once another actor marks configuration as succeeded."""
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, stub_service.set_configuration_state, ConfigurationState.SUCCEEDED)

        start = time.monotonic()
        await stub_service.wait_for_configuration_ready()

        assert time.monotonic() - start < stub_service.MAX_CONFIGURATION_WAIT_SEC

    @pytest.mark.asyncio
    async def test_failed_raises_before_deadline(self, stub_service: FastConfigurableMicroservice) -> None:
        """A failed configuration raises without waiting for the deadline."""
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, stub_service.set_configuration_state, ConfigurationState.FAILED)

        start = time.monotonic()
        with pytest.raises(ConfigurationFailed):
            await stub_service.wait_for_configuration_ready()

        assert time.monotonic() - start < stub_service.MAX_CONFIGURATION_WAIT_SEC

    @pytest.mark.asyncio
    async def test_failed_set_from_thread(self, stub_service: FastConfigurableMicroservice) -> None:
        """A state written on another thread is seen by the wait."""
        loop = asyncio.get_running_loop()
        loop.call_later(
            0.05,
            lambda: loop.run_in_executor(
                None, stub_service.set_configuration_state, ConfigurationState.FAILED))

        with pytest.raises(ConfigurationFailed):
            await stub_service.wait_for_configuration_ready()

    @pytest.mark.asyncio
    async def test_timeout(self, stub_service: FastConfigurableMicroservice) -> None:
        """Never leaving NOT_STARTED times out within one poll of the deadline."""
        start = time.monotonic()
        with pytest.raises(ConfigurationTimeout) as exc_info:
            await stub_service.wait_for_configuration_ready()
        elapsed = time.monotonic() - start

        assert exc_info.value.timeout == stub_service.MAX_CONFIGURATION_WAIT_SEC
        assert elapsed >= stub_service.MAX_CONFIGURATION_WAIT_SEC
        assert elapsed < stub_service.MAX_CONFIGURATION_WAIT_SEC + 1

    @pytest.mark.asyncio
    async def test_timeout_while_loading(self, stub_service: FastConfigurableMicroservice) -> None:
        """A configuration stuck in LOADING also times out."""
        stub_service.on_configuration_cache_initialized()

        with pytest.raises(ConfigurationTimeout):
            await stub_service.wait_for_configuration_ready()

    @pytest.mark.asyncio
    async def test_cancel_returns_quietly(self, stub_service: FastConfigurableMicroservice) -> None:
        """Cancelling the waiting task ends the wait without an error."""
        task = asyncio.ensure_future(stub_service.wait_for_configuration_ready())
        await asyncio.sleep(0.05)

        task.cancel()
        result = await task

        assert result is None
        assert not task.cancelled()
        assert stub_service.get_configuration_state() is ConfigurationState.NOT_STARTED

    @pytest.mark.asyncio
    async def test_outer_timeout_returns_normally(self, stub_service: FastConfigurableMicroservice) -> None:
        """An asyncio.wait_for timeout is swallowed like any cancellation; the state tells the truth."""
        result = await asyncio.wait_for(stub_service.wait_for_configuration_ready(), timeout=0.05)

        assert result is None
        assert stub_service.get_configuration_state() is not ConfigurationState.SUCCEEDED


class TestSetConfigurationState:
    """Test cases for set_configuration_state."""

    def test_terminal_state_cannot_change(self, stub_service: FastConfigurableMicroservice) -> None:
        """Once succeeded, configuration cannot be marked failed."""
        stub_service.set_configuration_state(ConfigurationState.SUCCEEDED)

        with pytest.raises(InvalidStateTransition):
            stub_service.set_configuration_state(ConfigurationState.FAILED)

    def test_state_change_logged(self, stub_service: FastConfigurableMicroservice, caplog) -> None:
        """State changes are logged."""
        caplog.set_level(logging.INFO, logger=SERVICE_LOGGER)

        stub_service.set_configuration_state(ConfigurationState.LOADING)

        assert "Configuration state changed: not_started -> loading" in caplog.text


class TestInitialize:
    """Test cases for initialize orchestration."""

    @pytest.mark.asyncio
    async def test_initializes_then_starts_monitor(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Initialize creates, registers, initializes and starts the monitor."""
        await stub_service.lifecycle_initialize(progress)

        assert stub_service.configuration_monitor is stub_monitor
        assert len(stub_monitor.listeners) == 1
        assert stub_monitor.calls == ["initialize", "start"]
        assert stub_monitor.status is LifecycleStatus.STARTED
        assert stub_service.status is LifecycleStatus.INITIALIZED
        assert any("Initialize test-service" in entry for entry in progress.history)

    @pytest.mark.asyncio
    async def test_listener_is_not_the_service(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """The registered listener is a separate value forwarding to the service."""
        await stub_service.lifecycle_initialize(progress)
        listener = stub_monitor.listeners[0]

        assert listener is not stub_service
        stub_monitor.signal_cache_initialized()
        assert stub_service.is_configuration_cache_ready() is True

    @pytest.mark.asyncio
    async def test_init_failure_skips_start(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A failed monitor init aborts initialization before start."""
        stub_monitor.fail_on["initialize"] = RuntimeError("store unreachable")

        with pytest.raises(LifecycleStepFailed) as exc_info:
            await stub_service.lifecycle_initialize(progress)

        assert exc_info.value.message == "Unable to initialize configuration monitor"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert stub_monitor.calls == ["initialize"]
        assert stub_service.status is LifecycleStatus.ERROR

    @pytest.mark.asyncio
    async def test_start_failure(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A failed monitor start surfaces with its own message."""
        stub_monitor.fail_on["start"] = RuntimeError("watch failed")

        with pytest.raises(LifecycleStepFailed) as exc_info:
            await stub_service.lifecycle_initialize(progress)

        assert exc_info.value.message == "Unable to start configuration monitor"
        assert stub_monitor.calls == ["initialize", "start"]

    def test_default_monitor_is_directory_backed(self, service_config: ServiceConfig) -> None:
        """Without a factory the monitor mirrors the store directory."""
        service = ConfigurableMicroservice(service_config)

        monitor = service.create_configuration_monitor()

        assert isinstance(monitor, DirectoryConfigurationMonitor)
        assert monitor.root_path == "config-gate/acme"
        assert str(monitor.store_directory) == service_config.store.directory
        assert len(monitor.listeners) == 1


class TestTerminate:
    """Test cases for terminate orchestration."""

    @pytest.mark.asyncio
    async def test_stops_then_terminates_monitor(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Terminate stops and then terminates the monitor."""
        await stub_service.lifecycle_initialize(progress)

        await stub_service.lifecycle_terminate(progress)

        assert stub_monitor.calls == ["initialize", "start", "stop", "terminate"]
        assert stub_monitor.status is LifecycleStatus.TERMINATED
        assert stub_service.status is LifecycleStatus.TERMINATED

    @pytest.mark.asyncio
    async def test_terminates_unconfigured_instance(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Teardown works although configuration never loaded."""
        await stub_service.lifecycle_initialize(progress)
        assert stub_service.get_configuration_state() is ConfigurationState.NOT_STARTED

        await stub_service.lifecycle_terminate(progress)

        assert stub_monitor.calls[-2:] == ["stop", "terminate"]

    @pytest.mark.asyncio
    async def test_terminates_after_failed_initialize(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Teardown still stops and terminates after a failed start."""
        stub_monitor.fail_on["start"] = RuntimeError("watch failed")
        with pytest.raises(LifecycleStepFailed):
            await stub_service.lifecycle_initialize(progress)

        await stub_service.lifecycle_terminate(progress)

        assert stub_monitor.calls == ["initialize", "start", "stop", "terminate"]

    @pytest.mark.asyncio
    async def test_stop_failure_still_terminates(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A failing stop step does not prevent monitor termination."""
        await stub_service.lifecycle_initialize(progress)
        stub_monitor.fail_on["stop"] = RuntimeError("already stopped")

        await stub_service.lifecycle_terminate(progress)

        assert stub_monitor.calls[-2:] == ["stop", "terminate"]

    @pytest.mark.asyncio
    async def test_terminate_without_initialize(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """Terminating a never-initialized service does not fail."""
        await stub_service.lifecycle_terminate(progress)

        assert stub_monitor.calls == []
        assert stub_service.status is LifecycleStatus.TERMINATED

    @pytest.mark.asyncio
    async def test_terminate_releases_monitor(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """After terminate the monitor is gone and reads fail; cache-ready stays set."""
        await stub_service.lifecycle_initialize(progress)
        stub_monitor.signal_cache_initialized()

        await stub_service.lifecycle_terminate(progress)

        assert stub_service.configuration_monitor is None
        with pytest.raises(ConfigurationNotReady):
            stub_service.get_configuration_data_for("tenants/acme.yaml")
        health = await stub_service.check_health()
        assert health['details']['configuration_monitor'] is None
        assert health['details']['configuration_cache_ready'] is True

    @pytest.mark.asyncio
    async def test_initialize_twice_is_refused(
        self,
        stub_service: FastConfigurableMicroservice,
        stub_monitor: StubConfigurationMonitor,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A second initialize does not replace a running monitor."""
        await stub_service.lifecycle_initialize(progress)

        with pytest.raises(LifecycleException, match="terminate it first"):
            await stub_service.lifecycle_initialize(progress)

        assert stub_service.configuration_monitor is stub_monitor
        assert stub_monitor.calls == ["initialize", "start"]
        assert len(stub_monitor.listeners) == 1

    @pytest.mark.asyncio
    async def test_initialize_after_terminate(
        self,
        service_config: ServiceConfig,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A terminated service can be initialized again with a new monitor."""
        created = []

        def factory(path: str) -> InMemoryConfigurationMonitor:
            created.append(InMemoryConfigurationMonitor(path, {"service.yaml": b"port: 8080\n"}))
            return created[-1]

        service = FastConfigurableMicroservice(service_config, monitor_factory=factory)
        await service.lifecycle_initialize(progress)
        await service.lifecycle_terminate(progress)

        await service.lifecycle_initialize(progress)
        try:
            assert len(created) == 2
            assert created[0].status is LifecycleStatus.TERMINATED
            assert service.configuration_monitor is created[1]
            assert service.get_configuration_data_for("service.yaml") == b"port: 8080\n"
        finally:
            await service.lifecycle_terminate(progress)


class TestWithInMemoryMonitor:
    """End-to-end tests against the in-memory monitor."""

    @pytest.mark.asyncio
    async def test_startup_flow(
        self,
        service_config: ServiceConfig,
        progress: LifecycleProgressMonitor,
        caplog
    ) -> None:
        """Initial entries are silent, later changes are logged, reads pass through."""
        caplog.set_level(logging.INFO, logger=SERVICE_LOGGER)
        monitor = InMemoryConfigurationMonitor(initial={"service.yaml": b"port: 8080\n"})
        service = FastConfigurableMicroservice(service_config, monitor_factory=lambda path: monitor)

        await service.lifecycle_initialize(progress)

        assert service.is_configuration_cache_ready() is True
        assert service.get_configuration_state() is ConfigurationState.LOADING
        assert "Configuration added for 'service.yaml'." not in caplog.text
        assert service.get_configuration_data_for("service.yaml") == b"port: 8080\n"

        monitor.put("service.yaml", b"port: 9090\n")
        monitor.put("tenants/acme.yaml", b"name: acme\n")
        monitor.delete("tenants/acme.yaml")

        assert "Configuration updated for 'service.yaml'." in caplog.text
        assert "Configuration added for 'tenants/acme.yaml'." in caplog.text
        assert "Configuration deleted for 'tenants/acme.yaml'." in caplog.text

        service.set_configuration_state(ConfigurationState.SUCCEEDED)
        await service.wait_for_configuration_ready()

        health = await service.check_health()
        assert health['healthy'] is True
        assert health['details']['configuration_state'] == "succeeded"
        assert health['details']['configuration_cache_ready'] is True
        assert health['details']['configuration_monitor']['details']['cached_paths'] == 1

        await service.lifecycle_terminate(progress)
        assert monitor.listeners == []

    @pytest.mark.asyncio
    async def test_failed_configuration_is_unhealthy(
        self,
        service_config: ServiceConfig,
        progress: LifecycleProgressMonitor
    ) -> None:
        """A failed configuration reports the service as unhealthy."""
        monitor = InMemoryConfigurationMonitor()
        service = FastConfigurableMicroservice(service_config, monitor_factory=lambda path: monitor)
        await service.lifecycle_initialize(progress)

        service.set_configuration_state(ConfigurationState.FAILED)

        health = await service.check_health()
        assert health['healthy'] is False
        assert health['details']['instance_id'] == "acme"
        assert health['details']['uptime'] is not None
