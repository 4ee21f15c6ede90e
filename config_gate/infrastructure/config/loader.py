"""
Reading and writing of service configuration files.

Settings come from an optional YAML or JSON file, then ``CONFIG_GATE_*``
environment variables are layered on top before the result is validated by
``ServiceConfig``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from .models import ServiceConfig

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('true', '1', 'yes', 'on', 'enabled')


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


# Environment variable suffix -> (dotted settings key, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "NAME": ("name", str),
    "INSTANCE_ID": ("instance_id", str),
    "STORE_DIR": ("store.directory", str),
    "STORE_ROOT": ("store.root_path", str),
    "STORE_POLLING": ("store.use_polling", _parse_bool),
    "REQUIRED_PATHS": ("required_paths", _parse_list),
    "LOG_LEVEL": ("logging.level", str),
    "LOG_DIR": ("logging.log_directory", str),
    "LOG_FILE_ENABLED": ("logging.file_enabled", _parse_bool),
}

_SUFFIX_FORMATS = {'.yaml': "yaml", '.yml': "yaml", '.json': "json"}


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``overlay`` into a copy of ``base``, descending into sections."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads ``ServiceConfig`` from files and the environment."""

    def __init__(self, env_prefix: str = "CONFIG_GATE_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = None) -> ServiceConfig:
        """
        Build the service configuration.

        Args:
            config_file: YAML or JSON settings file (optional)

        Returns:
            Validated configuration

        Raises:
            FileNotFoundError: If ``config_file`` does not exist
            ValueError: If the file or an override is invalid
        """
        data = self._read(Path(config_file)) if config_file else {}
        data = deep_merge(data, self.environment_overrides())

        config = ServiceConfig.from_dict(data)
        config.config_file_path = config_file
        return config

    def save_config(self, config: ServiceConfig, file_path: str, format: str = "yaml") -> None:
        """Write ``config`` to ``file_path`` as YAML or JSON."""
        data = config.to_dict()
        data.pop('config_file_path', None)

        kind = format.lower()
        if kind == "yaml":
            text = yaml.safe_dump(data, default_flow_style=False, indent=2)
        elif kind == "json":
            text = json.dumps(data, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")

        Path(file_path).write_text(text, encoding='utf-8')
        logger.debug(f"Configuration written to {file_path}")

    def environment_overrides(self) -> Dict[str, Any]:
        """Collect settings from prefixed environment variables as a nested dict."""
        overrides: Dict[str, Any] = {}
        for suffix, (key, convert) in ENV_OVERRIDES.items():
            name = self._env_prefix + suffix
            raw = os.environ.get(name)
            if raw is None:
                continue
            try:
                value = convert(raw)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {name}: {raw} ({e})")

            *sections, leaf = key.split('.')
            target = overrides
            for section in sections:
                target = target.setdefault(section, {})
            target[leaf] = value
        return overrides

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        kind = _SUFFIX_FORMATS.get(path.suffix.lower())
        if kind is None:
            raise ValueError(f"Unsupported configuration file format: {path.suffix}")

        text = path.read_text(encoding='utf-8')
        if kind == "yaml":
            try:
                data = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}")
        else:
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {path} must be a mapping")
        return data
