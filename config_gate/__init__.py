"""
config-gate - configuration readiness gate for clustered services.

This package lets a service mirror its configuration from a shared
coordination store, refuse to act on it until the first full load has
completed, and block startup until the configuration has been judged usable.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.state import ConfigurationState
from .core.domain.exceptions import (
    ConfigurationError,
    ConfigurationTimeout,
    ConfigurationFailed,
    ConfigurationNotReady,
    LifecycleStepFailed,
)
from .core.interfaces.configuration import IConfigurationListener, IConfigurationMonitor
from .application.lifecycle import LifecycleProgressMonitor
from .application.microservice import ConfigurableMicroservice

__all__ = [
    "ConfigurationState",
    "ConfigurationError",
    "ConfigurationTimeout",
    "ConfigurationFailed",
    "ConfigurationNotReady",
    "LifecycleStepFailed",
    "IConfigurationListener",
    "IConfigurationMonitor",
    "LifecycleProgressMonitor",
    "ConfigurableMicroservice",
]
