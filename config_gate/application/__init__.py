"""
Application layer containing lifecycle orchestration and the configurable
microservice.

This layer drives the configuration monitor through its lifecycle and gates
the rest of the service on configuration readiness.
"""

from .lifecycle import (
    LifecycleComponent,
    LifecycleProgressMonitor,
    CompositeLifecycleStep,
    InitializeComponentLifecycleStep,
    StartComponentLifecycleStep,
    StopComponentLifecycleStep,
)
from .listeners import CallbackConfigurationListener
from .microservice import Microservice, ConfigurableMicroservice

__all__ = [
    "LifecycleComponent",
    "LifecycleProgressMonitor",
    "CompositeLifecycleStep",
    "InitializeComponentLifecycleStep",
    "StartComponentLifecycleStep",
    "StopComponentLifecycleStep",
    "CallbackConfigurationListener",
    "Microservice",
    "ConfigurableMicroservice",
]
