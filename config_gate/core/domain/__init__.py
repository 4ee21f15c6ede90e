"""
Domain models for configuration readiness.
"""

from .exceptions import (
    ConfigurationError,
    ConfigurationTimeout,
    ConfigurationFailed,
    ConfigurationNotReady,
    ConfigurationPathNotFound,
    InvalidStateTransition,
    LifecycleException,
    LifecycleStepFailed,
)
from .state import ConfigurationState, ConfigurationStateHolder

__all__ = [
    "ConfigurationError",
    "ConfigurationTimeout",
    "ConfigurationFailed",
    "ConfigurationNotReady",
    "ConfigurationPathNotFound",
    "InvalidStateTransition",
    "LifecycleException",
    "LifecycleStepFailed",
    "ConfigurationState",
    "ConfigurationStateHolder",
]
