"""
Core module containing the readiness state model, errors and component contracts.

This module is independent of the coordination store and of the
infrastructure used to watch it.
"""

from .interfaces.lifecycle import ILifecycleComponent, LifecycleStatus
from .interfaces.configuration import (
    IConfigurationListener,
    IConfigurationMonitor,
    IConfigurableMicroservice,
)
from .domain.state import ConfigurationState, ConfigurationStateHolder
from .domain.exceptions import (
    ConfigurationError,
    ConfigurationTimeout,
    ConfigurationFailed,
    ConfigurationNotReady,
    LifecycleStepFailed,
)

__all__ = [
    "ILifecycleComponent",
    "LifecycleStatus",
    "IConfigurationListener",
    "IConfigurationMonitor",
    "IConfigurableMicroservice",
    "ConfigurationState",
    "ConfigurationStateHolder",
    "ConfigurationError",
    "ConfigurationTimeout",
    "ConfigurationFailed",
    "ConfigurationNotReady",
    "LifecycleStepFailed",
]
