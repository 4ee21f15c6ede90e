"""
Core interfaces defining the contracts for lifecycle and configuration components.

These interfaces provide the foundation for dependency inversion and keep the
configuration monitor decoupled from the services consuming it.
"""

from .lifecycle import (
    LifecycleStatus,
    ILifecycleProgressMonitor,
    ILifecycleComponent,
    ILifecycleStep,
    ICompositeLifecycleStep,
)
from .configuration import (
    IConfigurationListener,
    IConfigurationMonitor,
    IConfigurableMicroservice,
)

__all__ = [
    "LifecycleStatus",
    "ILifecycleProgressMonitor",
    "ILifecycleComponent",
    "ILifecycleStep",
    "ICompositeLifecycleStep",
    "IConfigurationListener",
    "IConfigurationMonitor",
    "IConfigurableMicroservice",
]
