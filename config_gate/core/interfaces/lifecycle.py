"""
Lifecycle management interfaces for components that need startup/shutdown behavior.

These interfaces provide a consistent way to drive components through
initialize, start, stop and terminate, and to compose that work into
named, ordered steps.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List


class LifecycleStatus(Enum):
    """Lifecycle status of a component."""
    CREATED = "created"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"
    TERMINATING = "terminating"
    TERMINATED = "terminated"
    ERROR = "error"


class ILifecycleProgressMonitor(ABC):
    """Interface for reporting progress of lifecycle operations."""

    @abstractmethod
    def start_progress(self, task_name: str) -> None:
        """
        Begin a nested unit of progress.

        Args:
            task_name: Name of the task being started
        """
        pass

    @abstractmethod
    def report_progress(self, message: str) -> None:
        """
        Report progress within the current task.

        Args:
            message: Progress message
        """
        pass

    @abstractmethod
    def finish_progress(self) -> None:
        """Finish the current unit of progress."""
        pass


class ILifecycleComponent(ABC):
    """
    Interface for components with a managed lifecycle.

    Callers drive components through the ``lifecycle_*`` methods, which
    track status and errors around the component's own hooks.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the component name."""
        pass

    @property
    @abstractmethod
    def status(self) -> LifecycleStatus:
        """Get the current lifecycle status."""
        pass

    @abstractmethod
    async def lifecycle_initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Initialize the component.

        Raises:
            Exception: If the component fails to initialize.
        """
        pass

    @abstractmethod
    async def lifecycle_start(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Start the component.

        Raises:
            Exception: If the component fails to start.
        """
        pass

    @abstractmethod
    async def lifecycle_stop(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Stop the component gracefully.

        Raises:
            Exception: If the component fails to stop cleanly.
        """
        pass

    @abstractmethod
    async def lifecycle_terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Release everything the component holds.

        Raises:
            Exception: If the component fails to terminate.
        """
        pass

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Check the health status of the component.

        Returns:
            Dict containing health information with at least:
            - 'healthy': bool indicating if component is healthy
            - 'status': str describing current status
            - 'details': Dict with additional health details
        """
        pass


class ILifecycleStep(ABC):
    """A named, individually failable unit of startup/shutdown work."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the step name."""
        pass

    @abstractmethod
    async def execute(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Execute the step.

        Args:
            monitor: Progress monitor for reporting

        Raises:
            LifecycleStepFailed: If a required step fails
        """
        pass


class ICompositeLifecycleStep(ILifecycleStep):
    """Lifecycle step composed of ordered child steps."""

    @property
    @abstractmethod
    def steps(self) -> List[ILifecycleStep]:
        """Get the child steps in execution order."""
        pass

    @abstractmethod
    def add_step(self, step: ILifecycleStep) -> None:
        """
        Append a step to the sequence.

        Args:
            step: Step to run after those already added
        """
        pass

