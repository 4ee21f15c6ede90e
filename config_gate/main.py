"""
Main entry point for config-gate.

This module provides the command-line interface for running a configurable
service over a directory-backed coordination store.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from .application.lifecycle import LifecycleProgressMonitor
from .application.microservice import ConfigurableMicroservice
from .core.domain.exceptions import (
    ConfigurationError,
    ConfigurationPathNotFound,
    LifecycleException,
)
from .core.domain.state import ConfigurationState
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ServiceConfig
from .infrastructure.logging.setup import setup_logging

cli = typer.Typer(
    name="config-gate",
    help="Gate service startup on configuration mirrored from a coordination store"
)

logger = logging.getLogger(__name__)

# Seconds to wait for the first full synchronization of the cache
CACHE_WAIT_SEC = 30.0


def _load(config_file: Optional[str], instance_id: Optional[str], log_level: Optional[str]) -> ServiceConfig:
    config = ConfigLoader().load_config(config_file)
    if instance_id:
        config.instance_id = instance_id
    if log_level:
        config.logging.level = log_level.upper()
    return config


async def wait_for_cache(service: ConfigurableMicroservice, timeout: float = CACHE_WAIT_SEC) -> bool:
    """
    Wait until the configuration cache of a service is populated.

    Returns:
        True if the cache became ready within ``timeout`` seconds
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not service.is_configuration_cache_ready():
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(0.1)
    return True


def validate_required_paths(service: ConfigurableMicroservice, required_paths: List[str]) -> List[str]:
    """
    Judge the loaded configuration by checking that required paths exist.

    Moves the configuration state to SUCCEEDED or FAILED.

    Returns:
        The required paths that are missing
    """
    missing = []
    for path in required_paths:
        try:
            service.get_configuration_data_for(path)
        except ConfigurationPathNotFound:
            missing.append(path)

    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        service.set_configuration_state(ConfigurationState.FAILED)
    else:
        service.set_configuration_state(ConfigurationState.SUCCEEDED)
    return missing


async def start_service(config: ServiceConfig) -> ConfigurableMicroservice:
    """
    Initialize a service and wait until its configuration is ready.

    The service is terminated again if any step fails.
    """
    service = ConfigurableMicroservice(config)
    try:
        await service.lifecycle_initialize(LifecycleProgressMonitor(f"Initialize {config.name}"))
        if not await wait_for_cache(service):
            service.set_configuration_state(ConfigurationState.FAILED)
        else:
            validate_required_paths(service, config.required_paths)
        await service.wait_for_configuration_ready()
        if service.get_configuration_state() is not ConfigurationState.SUCCEEDED:
            # The wait gives up quietly when cancelled; keep unwinding
            raise asyncio.CancelledError()
    except BaseException:
        await stop_service(service)
        raise
    return service


async def stop_service(service: ConfigurableMicroservice) -> None:
    """Terminate a service, logging rather than raising on failure."""
    try:
        await service.lifecycle_terminate(LifecycleProgressMonitor(f"Terminate {service.name}"))
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


async def run_service(config: ServiceConfig) -> None:
    """Run a service until it is cancelled."""
    service = await start_service(config)
    logger.info(f"{config.name} is ready, watching for configuration changes")
    try:
        await asyncio.Event().wait()
    finally:
        await stop_service(service)


async def read_path(config: ServiceConfig, path: str) -> bytes:
    """Start a service, read one configuration path and stop again."""
    service = await start_service(config)
    try:
        return service.get_configuration_data_for(path)
    finally:
        await stop_service(service)


@cli.command()
def watch(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    instance_id: Optional[str] = typer.Option(
        None, "--instance", "-i", help="Instance id"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    )
) -> None:
    """Start the service and log configuration changes until interrupted."""
    config = _load(config_file, instance_id, log_level)
    setup_logging(config.logging)

    logger.info(f"Starting {config.name} for instance '{config.instance_id}'")

    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except (ConfigurationError, LifecycleException) as e:
        logger.error(f"Service failed to start: {e}")
        sys.exit(1)


@cli.command()
def get(
    path: str = typer.Argument(..., help="Configuration path to read"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    instance_id: Optional[str] = typer.Option(
        None, "--instance", "-i", help="Instance id"
    )
) -> None:
    """Print the content stored for a configuration path."""
    config = _load(config_file, instance_id, "WARNING")
    config.logging.file_enabled = False
    setup_logging(config.logging)

    try:
        data = asyncio.run(read_path(config, path))
    except (ConfigurationError, LifecycleException) as e:
        typer.echo(f"Unable to read '{path}': {e}", err=True)
        sys.exit(1)

    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


@cli.command("init-config")
def init_config(
    output: Path = typer.Option(
        Path("config.yaml"), "--output", "-o", help="Where to write the settings file"
    ),
    instance_id: str = typer.Option(
        "default", "--instance", "-i", help="Instance id to write"
    ),
    force: bool = typer.Option(
        False, "--force", help="Overwrite an existing file"
    )
) -> None:
    """Write a settings file with default values."""
    if output.exists() and not force:
        typer.echo(f"{output} already exists, use --force to replace it", err=True)
        sys.exit(1)

    fmt = "json" if output.suffix.lower() == ".json" else "yaml"
    try:
        config = ServiceConfig(instance_id=instance_id)
        ConfigLoader().save_config(config, str(output), fmt)
    except (OSError, ValueError) as e:
        typer.echo(f"Unable to write {output}: {e}", err=True)
        sys.exit(1)
    typer.echo(f"Wrote {fmt.upper()} settings for instance '{instance_id}' to {output}")


@cli.command("validate-config")
def validate_config(
    config_file: Path = typer.Argument(..., help="Settings file to check")
) -> None:
    """Check a settings file and show where its configuration is read from."""
    try:
        config = ConfigLoader().load_config(str(config_file))
    except (OSError, ValueError, TypeError) as e:
        typer.echo(f"{config_file}: validation failed: {e}", err=True)
        sys.exit(1)

    instance_dir = Path(config.store.directory) / config.instance_configuration_path
    typer.echo(f"{config_file} is valid")
    typer.echo(f"  service:   {config.name}")
    typer.echo(f"  instance:  {config.instance_id}")
    typer.echo(f"  directory: {instance_dir}{'' if instance_dir.is_dir() else ' (missing)'}")
    if config.required_paths:
        typer.echo(f"  requires:  {', '.join(config.required_paths)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
