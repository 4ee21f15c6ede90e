"""
Configuration models and data structures.

This module defines the settings a configurable service is started with:
where its coordination store lives, which instance it belongs to, and how
it logs.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class StoreConfig:
    """Coordination store settings."""
    directory: str = "store"
    root_path: str = "config-gate"
    use_polling: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = ("{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                   "{name}:{function}:{line} - {message}")
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = True


_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServiceConfig:
    """Main service configuration."""

    name: str = "config-gate"
    instance_id: str = "default"

    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Paths that must exist in the store for configuration to be usable
    required_paths: List[str] = field(default_factory=list)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.name:
            raise ValueError("Service name cannot be empty")
        if not self.instance_id or "/" in self.instance_id:
            raise ValueError(
                f"Instance id must be a non-empty path segment, got {self.instance_id!r}")
        if not self.store.directory:
            raise ValueError("Store directory cannot be empty")
        if self.logging.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.logging.level}")
        if self.logging.backup_count < 0:
            raise ValueError(
                f"Log backup count must not be negative, got {self.logging.backup_count}")

    @property
    def instance_configuration_path(self) -> str:
        """Store path holding the configuration of this instance."""
        parts = [p for p in self.store.root_path.split("/") if p]
        parts.append(self.instance_id)
        return "/".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain, nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServiceConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'config-gate'),
            instance_id=data.get('instance_id', 'default'),
            store=StoreConfig(**data.get('store', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            required_paths=list(data.get('required_paths', [])),
            config_file_path=data.get('config_file_path')
        )
