"""
Shared fixtures for config-gate tests.
"""

import pytest

from config_gate.application.lifecycle import LifecycleProgressMonitor
from config_gate.infrastructure.config.models import ServiceConfig, StoreConfig, LoggingConfig
from config_gate.infrastructure.monitor.memory import InMemoryConfigurationMonitor

from support import FastConfigurableMicroservice, StubConfigurationMonitor


@pytest.fixture
def service_config(tmp_path) -> ServiceConfig:
    """Service configuration over a temporary store directory."""
    return ServiceConfig(
        name="test-service",
        instance_id="acme",
        store=StoreConfig(directory=str(tmp_path / "store"), root_path="config-gate"),
        logging=LoggingConfig(file_enabled=False)
    )


@pytest.fixture
def progress() -> LifecycleProgressMonitor:
    """Progress monitor for lifecycle calls."""
    return LifecycleProgressMonitor("test")


@pytest.fixture
def stub_monitor() -> StubConfigurationMonitor:
    """Scriptable configuration monitor."""
    return StubConfigurationMonitor({"tenants/acme.yaml": b"name: acme\n"})


@pytest.fixture
def stub_service(service_config: ServiceConfig, stub_monitor: StubConfigurationMonitor) -> FastConfigurableMicroservice:
    """Service using the stub monitor."""
    return FastConfigurableMicroservice(service_config, monitor_factory=lambda path: stub_monitor)


@pytest.fixture
def memory_monitor() -> InMemoryConfigurationMonitor:
    """In-memory monitor with one stored entry."""
    return InMemoryConfigurationMonitor("config-gate/acme", {"service.yaml": b"port: 8080\n"})
