"""
Lifecycle component base class and composable lifecycle steps.

Components are driven through initialize, start, stop and terminate by
running named steps in order. A required step that fails aborts the rest of
its sequence; an optional step that fails is logged and the sequence goes on.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..core.domain.exceptions import LifecycleStepFailed
from ..core.interfaces.lifecycle import (
    ICompositeLifecycleStep,
    ILifecycleComponent,
    ILifecycleProgressMonitor,
    ILifecycleStep,
    LifecycleStatus,
)

logger = logging.getLogger(__name__)


class LifecycleProgressMonitor(ILifecycleProgressMonitor):
    """
    Progress monitor that logs and records lifecycle progress.

    Tasks nest: each ``start_progress`` pushes a task name and
    ``finish_progress`` pops it. Reported messages are prefixed with the
    current task path.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._tasks: List[str] = []
        self.history: List[str] = []

    @property
    def current_task(self) -> Optional[str]:
        """Get the innermost running task."""
        return self._tasks[-1] if self._tasks else None

    def start_progress(self, task_name: str) -> None:
        self._tasks.append(task_name)
        self._record(f"Started {task_name}")

    def report_progress(self, message: str) -> None:
        self._record(message)

    def finish_progress(self) -> None:
        if not self._tasks:
            return
        task_name = self._tasks.pop()
        self._record(f"Finished {task_name}")

    def _record(self, message: str) -> None:
        prefix = " > ".join([self.operation] + self._tasks)
        entry = f"[{prefix}] {message}"
        self.history.append(entry)
        logger.debug(entry)


class LifecycleComponent(ILifecycleComponent):
    """
    Base implementation of a lifecycle-managed component.

    Subclasses override the ``initialize``, ``start``, ``stop`` and
    ``terminate`` hooks. Callers use the ``lifecycle_*`` wrappers, which
    track status and the last error around each hook.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self._name = name or self.__class__.__name__
        self._status = LifecycleStatus.CREATED
        self._last_error: Optional[BaseException] = None

    @property
    def name(self) -> str:
        """Get component name."""
        return self._name

    @property
    def status(self) -> LifecycleStatus:
        """Get current lifecycle status."""
        return self._status

    @property
    def last_error(self) -> Optional[BaseException]:
        """Get the error that last moved the component to ERROR."""
        return self._last_error

    async def initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        """Initialize hook."""

    async def start(self, monitor: ILifecycleProgressMonitor) -> None:
        """Start hook."""

    async def stop(self, monitor: ILifecycleProgressMonitor) -> None:
        """Stop hook."""

    async def terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        """Terminate hook."""

    async def lifecycle_initialize(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._transition(
            self.initialize, monitor,
            LifecycleStatus.INITIALIZING, LifecycleStatus.INITIALIZED)

    async def lifecycle_start(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._transition(
            self.start, monitor,
            LifecycleStatus.STARTING, LifecycleStatus.STARTED)

    async def lifecycle_stop(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._transition(
            self.stop, monitor,
            LifecycleStatus.STOPPING, LifecycleStatus.STOPPED)

    async def lifecycle_terminate(self, monitor: ILifecycleProgressMonitor) -> None:
        await self._transition(
            self.terminate, monitor,
            LifecycleStatus.TERMINATING, LifecycleStatus.TERMINATED)

    async def check_health(self) -> Dict[str, Any]:
        """Check component health."""
        return {
            'healthy': self._status is not LifecycleStatus.ERROR,
            'status': self._status.value,
            'details': {
                'name': self._name,
                'last_error': str(self._last_error) if self._last_error else None
            }
        }

    async def _transition(
        self,
        hook: Callable[[ILifecycleProgressMonitor], Awaitable[None]],
        monitor: ILifecycleProgressMonitor,
        during: LifecycleStatus,
        after: LifecycleStatus
    ) -> None:
        self._status = during
        try:
            await hook(monitor)
        except asyncio.CancelledError:
            self._status = LifecycleStatus.ERROR
            raise
        except Exception as e:
            self._status = LifecycleStatus.ERROR
            self._last_error = e
            raise
        self._status = after
        logger.debug(f"Component {self._name} is {after.value}")


class CompositeLifecycleStep(ICompositeLifecycleStep):
    """Ordered, fail-fast sequence of lifecycle steps."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._steps: List[ILifecycleStep] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def steps(self) -> List[ILifecycleStep]:
        return list(self._steps)

    def add_step(self, step: ILifecycleStep) -> None:
        self._steps.append(step)

    async def execute(self, monitor: ILifecycleProgressMonitor) -> None:
        """
        Run every step in order.

        A step raising stops the sequence; steps after it are never run.

        Args:
            monitor: Progress monitor for reporting
        """
        logger.debug(f"Executing {self._name} ({len(self._steps)} steps)")
        monitor.start_progress(self._name)
        try:
            for index, step in enumerate(self._steps, start=1):
                monitor.report_progress(
                    f"Step {index} of {len(self._steps)}: {step.name}")
                await step.execute(monitor)
        finally:
            monitor.finish_progress()


class ComponentLifecycleStep(ILifecycleStep):
    """
    Step that drives one lifecycle operation of a component.

    Subclasses name the operation and implement ``_run``.
    """

    operation = "Process"

    def __init__(
        self,
        owner: Optional[ILifecycleComponent],
        component: ILifecycleComponent,
        name: str,
        error_message: str,
        require: bool = True
    ) -> None:
        """
        Initialize the step.

        Args:
            owner: Component on whose behalf the step runs
            component: Component the operation is applied to
            name: Human readable component name
            error_message: Message reported if the operation fails
            require: Whether a failure aborts the enclosing sequence
        """
        self.owner = owner
        self.component = component
        self.component_name = name
        self.error_message = error_message
        self.require = require

    @property
    def name(self) -> str:
        return f"{self.operation} {self.component_name}"

    async def execute(self, monitor: ILifecycleProgressMonitor) -> None:
        try:
            await self._run(monitor)
            logger.info(f"{self.name} completed")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self.require:
                logger.error(f"{self.error_message}: {e}")
                raise LifecycleStepFailed(self.error_message, self.name, e) from e
            logger.error(f"{self.error_message} (continuing): {e}")

    async def _run(self, monitor: ILifecycleProgressMonitor) -> None:
        raise NotImplementedError


class InitializeComponentLifecycleStep(ComponentLifecycleStep):
    """Initializes a component."""

    operation = "Initialize"

    async def _run(self, monitor: ILifecycleProgressMonitor) -> None:
        await self.component.lifecycle_initialize(monitor)


class StartComponentLifecycleStep(ComponentLifecycleStep):
    """Starts a component."""

    operation = "Start"

    async def _run(self, monitor: ILifecycleProgressMonitor) -> None:
        await self.component.lifecycle_start(monitor)


class StopComponentLifecycleStep(ComponentLifecycleStep):
    """Stops a component. Failures are logged and do not abort shutdown."""

    operation = "Stop"

    def __init__(
        self,
        owner: Optional[ILifecycleComponent],
        component: ILifecycleComponent,
        name: str,
        error_message: Optional[str] = None,
        require: bool = False
    ) -> None:
        super().__init__(
            owner, component, name,
            error_message or f"Unable to stop {name.lower()}",
            require)

    async def _run(self, monitor: ILifecycleProgressMonitor) -> None:
        await self.component.lifecycle_stop(monitor)
