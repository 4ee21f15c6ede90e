"""
Exceptions raised by the configuration readiness core.

Configuration errors describe problems with the configuration a service
waits on; lifecycle errors describe failures of the ordered startup and
shutdown steps that drive the configuration monitor.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Base class for configuration readiness errors."""


class ConfigurationTimeout(ConfigurationError):
    """Raised when configuration is not ready within the allowed time."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            f"Microservice not configured within allowable timeframe ({timeout:g}s)")


class ConfigurationFailed(ConfigurationError):
    """Raised when configuration reached the failed state."""

    def __init__(self, message: str = "Microservice configuration failed.") -> None:
        super().__init__(message)


class ConfigurationNotReady(ConfigurationError):
    """Raised when configuration data is read before the cache is populated."""

    def __init__(self, message: str = "Configuration cache not initialized.") -> None:
        super().__init__(message)


class ConfigurationPathNotFound(ConfigurationError):
    """Raised when no configuration exists for a path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No configuration found for '{path}'")


class InvalidStateTransition(ConfigurationError):
    """Raised on a configuration state change that is not allowed."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid configuration state transition: {current} -> {target}")


class LifecycleException(Exception):
    """Base class for lifecycle errors."""


class LifecycleStepFailed(LifecycleException):
    """Raised when a required lifecycle step fails."""

    def __init__(
        self,
        message: str,
        step_name: Optional[str] = None,
        cause: Optional[BaseException] = None
    ) -> None:
        self.message = message
        self.step_name = step_name
        self.cause = cause
        text = f"{message}: {cause}" if cause is not None else message
        super().__init__(text)
